from datetime import datetime, timedelta

import pytest

from stuwork.database import ensure_indexes
from stuwork.services.auth_service import (
    PASSWORD_RESET,
    REGISTRATION,
    AuthService,
    generate_otp,
)
from stuwork.utils.auth import decode_access_token
from stuwork.utils.errors import (
    DuplicateUserError,
    EmailDeliveryError,
    InvalidOrExpiredOtpError,
    NotFoundError,
)


def test_generate_otp_is_six_digits():
    for _ in range(200):
        otp = generate_otp()
        assert len(otp) == 6
        assert otp.isdigit()
        assert 100000 <= int(otp) <= 999999


@pytest.mark.asyncio
async def test_requesting_twice_leaves_one_valid_otp(mongo, mailer):
    await ensure_indexes(mongo)
    auth = AuthService(mongo, mailer)

    await auth.send_otp("twice@example.com", REGISTRATION)
    await auth.send_otp("twice@example.com", REGISTRATION)

    records = await mongo.otps.find({"email": "twice@example.com", "purpose": REGISTRATION}).to_list(10)
    assert len(records) == 1
    assert records[0]["otp"] == mailer.last_otp("twice@example.com")
    assert records[0]["is_used"] is False
    assert records[0]["expires_at"] > datetime.utcnow()


@pytest.mark.asyncio
async def test_purposes_are_kept_apart(mongo, mailer):
    auth = AuthService(mongo, mailer)
    await mongo.users.insert_one({"email": "both@example.com", "name": "Both", "role": "student"})

    with pytest.raises(DuplicateUserError):
        await auth.send_otp("both@example.com", REGISTRATION)

    await auth.send_otp("both@example.com", PASSWORD_RESET)
    assert await mongo.otps.count_documents({"email": "both@example.com"}) == 1


@pytest.mark.asyncio
async def test_reset_otp_needs_an_account(mongo, mailer):
    auth = AuthService(mongo, mailer)
    with pytest.raises(NotFoundError):
        await auth.send_otp("ghost@example.com", PASSWORD_RESET)
    assert mailer.otps == []


@pytest.mark.asyncio
async def test_delivery_failure_is_reported(mongo, mailer):
    mailer.fail_otp = True
    auth = AuthService(mongo, mailer)
    with pytest.raises(EmailDeliveryError):
        await auth.send_otp("down@example.com", REGISTRATION)


async def _issue(mongo, mailer, email="match@example.com"):
    auth = AuthService(mongo, mailer)
    await auth.send_otp(email, REGISTRATION)
    return auth, mailer.last_otp(email)


@pytest.mark.asyncio
async def test_matching_otp_is_consumed(mongo, mailer):
    auth, otp = await _issue(mongo, mailer)
    record = await auth.consume_otp("MATCH@example.com", otp, REGISTRATION)
    assert record["is_used"] is True

    with pytest.raises(InvalidOrExpiredOtpError):
        await auth.consume_otp("match@example.com", otp, REGISTRATION)


@pytest.mark.asyncio
async def test_wrong_purpose_is_rejected(mongo, mailer):
    auth, otp = await _issue(mongo, mailer)
    with pytest.raises(InvalidOrExpiredOtpError):
        await auth.consume_otp("match@example.com", otp, PASSWORD_RESET)


@pytest.mark.asyncio
async def test_wrong_code_is_rejected(mongo, mailer):
    auth, otp = await _issue(mongo, mailer)
    wrong = str(int(otp) + 1) if otp != "999999" else "100000"
    with pytest.raises(InvalidOrExpiredOtpError):
        await auth.consume_otp("match@example.com", wrong, REGISTRATION)


@pytest.mark.asyncio
async def test_expired_otp_is_rejected(mongo, mailer):
    auth, otp = await _issue(mongo, mailer)
    await mongo.otps.update_one(
        {"email": "match@example.com"},
        {"$set": {"expires_at": datetime.utcnow() - timedelta(seconds=1)}},
    )
    with pytest.raises(InvalidOrExpiredOtpError):
        await auth.consume_otp("match@example.com", otp, REGISTRATION)


@pytest.mark.asyncio
async def test_register_hashes_password_and_issues_token(mongo, mailer):
    auth, otp = await _issue(mongo, mailer, email="new@example.com")
    token, user = await auth.verify_and_register(
        name="New", email="new@example.com", password="Secret123", otp=otp, role="employer",
    )

    assert decode_access_token(token) == user["id"]
    assert user["role"] == "employer"

    stored = await mongo.users.find_one({"email": "new@example.com"})
    assert stored["password"] != "Secret123"
    assert stored["password"].startswith("$argon2")
    assert stored["is_verified"] is True

    with pytest.raises(DuplicateUserError):
        await auth.verify_and_register(name="New", email="new@example.com", password="Secret123", otp=otp)


@pytest.mark.asyncio
async def test_reset_password_purges_reset_codes(mongo, mailer):
    auth, otp = await _issue(mongo, mailer, email="purge@example.com")
    await auth.verify_and_register(name="P", email="purge@example.com", password="Secret123", otp=otp)

    await auth.send_otp("purge@example.com", PASSWORD_RESET)
    reset_otp = mailer.last_otp("purge@example.com", PASSWORD_RESET)
    await auth.reset_password("purge@example.com", reset_otp, "Changed123")

    assert await mongo.otps.count_documents({"email": "purge@example.com", "purpose": PASSWORD_RESET}) == 0
    token, _ = await auth.login("purge@example.com", "Changed123")
    assert token
