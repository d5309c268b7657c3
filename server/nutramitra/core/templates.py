"""HTML bodies for outgoing mail."""
import time
from html import escape

from nutramitra.core.config import settings

_WRAPPER = """
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px; background-color: #f9f9f9;">
  <div style="background-color: white; padding: 30px; border-radius: 10px;">
    {body}
  </div>
</div>
"""


def _year() -> int:
    return time.gmtime().tm_year


def verification_code_email(code: str, ttl_minutes: int, purpose: str = "signup"):
    """Returns (subject, html, text) for a verification code mail."""
    name = settings.PROJECT_NAME
    if purpose == "reset":
        subject = f"Your {name} Password Reset Code"
        heading = "Reset Your Password"
    else:
        subject = f"Your {name} Verification Code"
        heading = "Your Verification Code"

    body = f"""
    <h2 style="color: #16a34a; text-align: center;">{escape(name)}</h2>
    <h3 style="text-align: center;">{heading}</h3>
    <div style="background-color: #f9f9f9; padding: 15px; border-radius: 5px; text-align: center; margin: 20px 0;">
      <h1 style="font-size: 32px; letter-spacing: 5px; margin: 0; color: #333;">{code}</h1>
    </div>
    <p>This code will expire in {ttl_minutes} minutes.</p>
    <p>If you didn't request this code, please ignore this email.</p>
    <div style="margin-top: 30px; padding-top: 20px; border-top: 1px solid #e0e0e0; text-align: center; color: #666; font-size: 12px;">
      <p>&copy; {_year()} {escape(name)}. All rights reserved.</p>
    </div>
    """
    text = f"{heading}: {code}\nThis code will expire in {ttl_minutes} minutes."
    return subject, _WRAPPER.format(body=body), text


def contact_notification_email(name: str, email: str, subject: str, message: str):
    body = f"""
    <h1 style="color: #22c55e; text-align: center;">New Contact Form Submission</h1>
    <p style="color: #666; text-align: center;">From the {escape(settings.PROJECT_NAME)} website</p>
    <p><strong>Name:</strong> {escape(name)}</p>
    <p><strong>Email:</strong> {escape(email)}</p>
    <p><strong>Subject:</strong> {escape(subject)}</p>
    <h2 style="color: #333; font-size: 20px;">Message</h2>
    <p style="color: #555; line-height: 1.6; white-space: pre-wrap;">{escape(message)}</p>
    """
    text = f"From: {name} <{email}>\nSubject: {subject}\n\n{message}"
    return f"New Contact Form: {subject}", _WRAPPER.format(body=body), text


def contact_auto_reply_email(name: str, subject: str, message: str):
    site = settings.PROJECT_NAME
    browse_url = f"{settings.PUBLIC_BASE_URL.rstrip('/')}/all-fruits"
    body = f"""
    <h1 style="color: #22c55e; text-align: center;">Thank You for Contacting Us!</h1>
    <p>Dear {escape(name)},</p>
    <p>Thank you for reaching out to us! We have received your message and our team
    will get back to you within 24 hours during business days.</p>
    <h2 style="color: #333; font-size: 18px;">Your Message Summary</h2>
    <p><strong>Subject:</strong> {escape(subject)}</p>
    <p style="color: #555; line-height: 1.6; white-space: pre-wrap;">{escape(message)}</p>
    <p>While you wait, explore the nutritional benefits of fruits and vegetables:
    <a href="{escape(browse_url)}">Browse Our Fruit Collection</a></p>
    <p style="color: #888; font-size: 12px;">This is an automated response. Please do not reply to this email.</p>
    """
    text = f"Dear {name},\n\nWe received your message \"{subject}\" and will be in touch soon.\n{browse_url}"
    return (
        f"Thank you for contacting {site} - We'll be in touch soon!",
        _WRAPPER.format(body=body),
        text,
    )
