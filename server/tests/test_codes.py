import re

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from nutramitra.auth.codes import (
    RESET,
    SIGNUP,
    CodeRecord,
    MemoryVerificationCodeStore,
    SqlVerificationCodeStore,
    VerificationCodeService,
    VerificationResult,
    generate_code,
)
from nutramitra.core.exceptions import MailDeliveryError
from nutramitra.db.models import init_db

from conftest import FakeMailer

pytestmark = pytest.mark.anyio

TTL = 600


class Clock:
    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture(params=["memory", "sql"])
async def store(request, tmp_path):
    if request.param == "memory":
        yield MemoryVerificationCodeStore()
        return

    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'codes.db'}", poolclass=NullPool)
    await init_db(engine)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield SqlVerificationCodeStore(session)
    await engine.dispose()


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def service(store, clock):
    return VerificationCodeService(store, FakeMailer(), ttl_seconds=TTL, max_attempts=5, clock=clock)


def test_generated_codes_are_six_digits():
    for _ in range(200):
        assert re.fullmatch(r"\d{6}", generate_code())


async def test_issue_mails_the_code(service):
    issued = await service.issue_code("a@x.com")

    assert re.fullmatch(r"\d{6}", issued.code)
    [message] = service.mailer.outbox
    assert message["to"] == "a@x.com"
    assert issued.code in message["html"]
    assert "10 minutes" in message["text"]


async def test_second_issue_overwrites_the_first(service, store):
    first = await service.issue_code("a@x.com")
    second = await service.issue_code("a@x.com")

    record = await store.get(SIGNUP, "a@x.com")
    assert record.code == second.code
    if first.code != second.code:
        assert await service.verify_code("a@x.com", first.code) is VerificationResult.INVALID
    assert await service.verify_code("a@x.com", second.code) is VerificationResult.VERIFIED


async def test_code_is_single_use(service):
    issued = await service.issue_code("a@x.com")

    assert await service.verify_code("a@x.com", issued.code) is VerificationResult.VERIFIED
    assert await service.verify_code("a@x.com", issued.code) is VerificationResult.INVALID


async def test_expired_code_is_purged_on_touch(service, store, clock):
    issued = await service.issue_code("a@x.com")
    clock.now += TTL + 1

    assert await service.verify_code("a@x.com", issued.code) is VerificationResult.EXPIRED
    assert await store.get(SIGNUP, "a@x.com") is None
    assert await service.verify_code("a@x.com", issued.code) is VerificationResult.INVALID


async def test_code_still_valid_at_expiry_instant(service, clock):
    issued = await service.issue_code("a@x.com")
    clock.now += TTL

    assert await service.verify_code("a@x.com", issued.code) is VerificationResult.VERIFIED


async def test_wrong_code_keeps_the_stored_one(service, store):
    issued = await service.issue_code("a@x.com")
    wrong = "000000" if issued.code != "000000" else "111111"

    assert await service.verify_code("a@x.com", wrong) is VerificationResult.INVALID
    assert (await store.get(SIGNUP, "a@x.com")).code == issued.code
    assert await service.verify_code("a@x.com", issued.code) is VerificationResult.VERIFIED


async def test_codes_are_per_email(service):
    a = await service.issue_code("a@x.com")
    b = await service.issue_code("b@y.com")

    if a.code != b.code:
        assert await service.verify_code("a@x.com", b.code) is VerificationResult.INVALID
    assert await service.verify_code("b@y.com", b.code) is VerificationResult.VERIFIED
    assert await service.verify_code("a@x.com", a.code) is VerificationResult.VERIFIED


async def test_unknown_email_is_invalid(service):
    assert await service.verify_code("nobody@x.com", "123456") is VerificationResult.INVALID


async def test_email_is_case_insensitive(service):
    issued = await service.issue_code("Mixed.Case@X.com")

    assert issued.email == "mixed.case@x.com"
    assert await service.verify_code("mixed.case@x.com ", issued.code) is VerificationResult.VERIFIED


async def test_too_many_wrong_guesses_burn_the_code(service, store):
    issued = await service.issue_code("a@x.com")
    wrong = "000000" if issued.code != "000000" else "111111"

    for _ in range(5):
        assert await service.verify_code("a@x.com", wrong) is VerificationResult.INVALID

    assert await store.get(SIGNUP, "a@x.com") is None
    assert await service.verify_code("a@x.com", issued.code) is VerificationResult.INVALID


async def test_failed_send_keeps_previous_code(service, store):
    issued = await service.issue_code("a@x.com")
    service.mailer.fail = True

    with pytest.raises(MailDeliveryError):
        await service.issue_code("a@x.com")

    assert (await store.get(SIGNUP, "a@x.com")).code == issued.code


async def test_failed_send_stores_nothing(service, store):
    service.mailer.fail = True

    with pytest.raises(MailDeliveryError):
        await service.issue_code("a@x.com")

    assert await store.get(SIGNUP, "a@x.com") is None


async def test_expired_code_outlives_other_issues(service, clock):
    old = await service.issue_code("a@x.com")
    clock.now += TTL + 1
    await service.issue_code("b@y.com")

    assert await service.verify_code("a@x.com", old.code) is VerificationResult.EXPIRED


async def test_sweep_only_drops_long_expired(service, store, clock):
    await service.issue_code("old@x.com")
    clock.now += TTL + 60
    await service.issue_code("new@x.com")

    assert await service.sweep_expired(grace_seconds=3600) == 0
    assert await store.get(SIGNUP, "old@x.com") is not None

    clock.now += 3600
    assert await service.sweep_expired(grace_seconds=3600) == 1
    assert await store.get(SIGNUP, "old@x.com") is None
    assert await store.get(SIGNUP, "new@x.com") is not None


async def test_consume_only_succeeds_once(store, clock):
    service = VerificationCodeService(store, FakeMailer(), ttl_seconds=TTL, clock=clock)
    issued = await service.issue_code("a@x.com")

    assert await store.consume(SIGNUP, "a@x.com", issued.code) is True
    assert await store.consume(SIGNUP, "a@x.com", issued.code) is False


async def test_signup_and_reset_codes_are_separate(service, store):
    signup = await service.issue_code("a@x.com", purpose=SIGNUP)
    reset = await service.issue_code("a@x.com", purpose=RESET)

    assert (await store.get(SIGNUP, "a@x.com")).code == signup.code
    if signup.code != reset.code:
        assert await service.verify_code("a@x.com", signup.code, purpose=RESET) is VerificationResult.INVALID
    assert await service.verify_code("a@x.com", reset.code, purpose=RESET) is VerificationResult.VERIFIED
    assert await service.verify_code("a@x.com", signup.code) is VerificationResult.VERIFIED


class ReissueDuring:
    """Wraps a store and slips in a fresh code right after `hook` runs."""

    def __init__(self, inner, hook, fresh):
        self.inner = inner
        self.hook = hook
        self.fresh = fresh

    def __getattr__(self, name):
        attr = getattr(self.inner, name)
        if name != self.hook:
            return attr

        async def wrapped(*args):
            result = await attr(*args)
            await self.inner.put(self.fresh)
            return result
        return wrapped


def fresh_record(clock, code="424242"):
    return CodeRecord(email="a@x.com", code=code, issued_at=clock(), expires_at=clock() + TTL)


async def test_expiry_cleanup_spares_a_newer_code(store, clock):
    service = VerificationCodeService(store, FakeMailer(), ttl_seconds=TTL, clock=clock)
    old = await service.issue_code("a@x.com")
    clock.now += TTL + 1
    fresh = fresh_record(clock, "424242" if old.code != "424242" else "434343")
    service.store = ReissueDuring(store, "get", fresh)

    assert await service.verify_code("a@x.com", old.code) is VerificationResult.EXPIRED
    assert (await store.get(SIGNUP, "a@x.com")).code == fresh.code


async def test_burn_spares_a_newer_code(store, clock):
    service = VerificationCodeService(store, FakeMailer(), ttl_seconds=TTL, max_attempts=1, clock=clock)
    old = await service.issue_code("a@x.com")
    fresh = fresh_record(clock, "424242" if old.code != "424242" else "434343")
    wrong = next(c for c in ("000000", "111111", "222222") if c not in (old.code, fresh.code))
    service.store = ReissueDuring(store, "record_failure", fresh)

    assert await service.verify_code("a@x.com", wrong) is VerificationResult.INVALID
    assert (await store.get(SIGNUP, "a@x.com")).code == fresh.code
