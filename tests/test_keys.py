"""Tests for HOTPKey / TOTPKey and the URI factories."""

import pytest

from otpkey import (
    HMACType,
    HOTPKey,
    InvalidAlgorithm,
    InvalidCounter,
    InvalidDigits,
    InvalidPeriod,
    InvalidSecret,
    KeyType,
    TOTPKey,
    URI,
    from_uri_record,
    otpauth_from_uri,
)
from otpkey.keys import canonical_label

RFC_SECRET = "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ"  # base32("12345678901234567890")
SECRET = "HXDMVJECJJWSRB3HWIZR4IFUGFTMXBOZ"


# --- HOTP ------------------------------------------------------------------
def test_hotp_key_codes():
    key = HOTPKey(key=RFC_SECRET)
    assert key.get_type() is KeyType.HOTP
    assert key.get_code() == "755224"


def test_hotp_get_code_is_idempotent():
    key = HOTPKey(key=RFC_SECRET, counter=4)
    assert key.get_code() == key.get_code() == "338314"
    assert key.counter == 4


def test_advance_counter():
    key = HOTPKey(key=RFC_SECRET)
    for _ in range(5):
        key.advance_counter()
    assert key.counter == 5
    assert key.get_code() == "254676"
    assert key.advance_counter() == 6


def test_advance_counter_past_u64_is_rejected():
    key = HOTPKey(key=RFC_SECRET, counter=2 ** 64 - 1)
    with pytest.raises(InvalidCounter):
        key.advance_counter()
    assert key.counter == 2 ** 64 - 1


def test_hotp_verify_at_top_of_counter_range():
    key = HOTPKey(key=RFC_SECRET, counter=2 ** 64 - 2)
    code = key.get_code()
    assert key.verify(code, look_ahead=3)
    assert key.counter == 2 ** 64 - 1
    # the last counter cannot be moved past, so nothing verifies any more
    assert not key.verify(key.get_code(), look_ahead=1)
    assert not key.verify("000000", look_ahead=1)
    assert key.counter == 2 ** 64 - 1


def test_hotp_verify_moves_counter_on_match():
    key = HOTPKey(key=RFC_SECRET, counter=1)
    assert key.verify("969429", look_ahead=2)
    assert key.counter == 4
    assert not key.verify("969429")
    assert key.counter == 4


def test_padded_secret_from_older_keys():
    key = HOTPKey(key="MZZHI6LHOVUGU===", counter=5, hmac_type=HMACType.SHA512)
    assert key.get_code() == HOTPKey(key="MZZHI6LHOVUGU", counter=5, hmac_type="sha512").get_code()


# --- TOTP ------------------------------------------------------------------
@pytest.mark.parametrize("hmac_type, secret, expected", [
    (HMACType.SHA1, RFC_SECRET, "94287082"),
    (HMACType.SHA256, "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQGEZA", "46119246"),
])
def test_totp_key_codes(hmac_type, secret, expected):
    key = TOTPKey(key=secret, digits=8, hmac_type=hmac_type)
    assert key.get_type() is KeyType.TOTP
    assert key.get_code(timestamp=59) == expected


def test_totp_time_remaining():
    key = TOTPKey(key=RFC_SECRET, time_step=60, t0=30)
    assert key.time_remaining(100) == 50


def test_totp_verify():
    key = TOTPKey(key=RFC_SECRET)
    code = key.get_code(1000)
    assert key.verify(code, timestamp=1010)
    assert key.verify(code, timestamp=1030)
    assert not key.verify(code, timestamp=1030, window=0)


def test_changing_parameters_changes_future_codes():
    key = TOTPKey(key=RFC_SECRET)
    before = key.get_code(1234567890)
    key.digits = 8
    assert key.get_code(1234567890) == "89005924"
    assert key.get_code(1234567890).endswith(before)


# --- construction ----------------------------------------------------------
@pytest.mark.parametrize("secret", ["", "1234", "A"])
def test_invalid_secret_fails_construction(secret):
    with pytest.raises(InvalidSecret):
        TOTPKey(key=secret)
    with pytest.raises(InvalidSecret):
        HOTPKey(key=secret)


def test_invalid_digits_fail_construction():
    with pytest.raises(InvalidDigits):
        HOTPKey(key=SECRET, digits=11)


@pytest.mark.parametrize("time_step", [0, -1])
def test_invalid_period_fails_construction(time_step):
    with pytest.raises(InvalidPeriod):
        TOTPKey(key=SECRET, time_step=time_step)


def test_negative_counter_fails_construction():
    with pytest.raises(InvalidCounter):
        HOTPKey(key=SECRET, counter=-1)


def test_unknown_algorithm_fails_construction():
    with pytest.raises(InvalidAlgorithm):
        TOTPKey(key=SECRET, hmac_type="md5")
    with pytest.raises(ValueError):
        HOTPKey(key=SECRET, hmac_type="md5")


def test_names_and_recovery_codes():
    codes = ["AAAA-1111", "BBBB-2222"]
    key = HOTPKey(key=SECRET, name="bob", recovery_codes=codes)
    codes.append("CCCC-3333")
    assert key.get_recovery_codes() == ["AAAA-1111", "BBBB-2222"]
    key.set_recovery_codes(["X"])
    assert key.get_recovery_codes() == ["X"]

    key.set_name("carol")
    assert key.get_name() == "carol"


def test_canonical_label():
    assert canonical_label("alice", None) == (None, "alice")
    assert canonical_label("alice", "") == (None, "alice")
    assert canonical_label("ACME:alice", None) == ("ACME", "alice")
    assert canonical_label("ACME:alice", "ACME") == ("ACME", "alice")
    assert canonical_label("X:alice", "ACME") == ("ACME", "X:alice")


def test_name_with_issuer_prefix_is_split():
    key = TOTPKey(key=SECRET, name="ACME Co:john.doe@email.com")
    assert key.issuer == "ACME Co"
    assert key.get_name() == "john.doe@email.com"


# --- URI -------------------------------------------------------------------
def test_get_uri_is_a_fresh_record():
    key = HOTPKey(key=SECRET, name="bob", issuer="ACME", counter=3)
    record = key.get_uri()
    assert record == URI(
        key_type=KeyType.HOTP, name="bob", secret=SECRET, algorithm=HMACType.SHA1,
        digits=6, counter=3, issuer="ACME",
    )
    record.counter = 99
    assert key.counter == 3
    assert key.get_uri() is not record


def test_to_uri():
    key = TOTPKey(key=SECRET, name="john.doe@email.com", issuer="ACME Co",
                  digits=7, time_step=60, hmac_type=HMACType.SHA256)
    assert key.to_uri() == (
        "otpauth://totp/ACME%20Co:john.doe@email.com?secret=HXDMVJECJJWSRB3HWIZR4IFUGFTMXBOZ"
        "&issuer=ACME%20Co&algorithm=SHA256&digits=7&period=60"
    )


def test_otpauth_from_uri_totp():
    parsed = otpauth_from_uri(
        "otpauth://totp/ACME%20Co:john.doe@email.com?secret=HXDMVJECJJWSRB3HWIZR4IFUGFTMXBOZ"
        "&issuer=ACME%20Co&algorithm=SHA256&digits=7&period=60"
    )
    direct = TOTPKey(key=SECRET, name="john.doe@email.com", issuer="ACME Co",
                     digits=7, time_step=60, hmac_type=HMACType.SHA256)
    assert parsed == direct
    assert parsed.get_code(1700000000) == direct.get_code(1700000000)


def test_otpauth_from_uri_hotp():
    parsed = otpauth_from_uri(
        "otpauth://hotp/ACME%20Co:john.doe@email.com?secret=HXDMVJECJJWSRB3HWIZR4IFUGFTMXBOZ"
        "&issuer=ACME%20Co&algorithm=SHA256&digits=7&counter=7"
    )
    assert isinstance(parsed, HOTPKey)
    assert parsed.counter == 7
    assert parsed.get_code() == HOTPKey(key=SECRET, digits=7, counter=7, hmac_type=HMACType.SHA256).get_code()


def test_otpauth_from_uri_validates_parameters():
    with pytest.raises(InvalidPeriod):
        otpauth_from_uri(f"otpauth://totp/x?secret={SECRET}&period=0")
    with pytest.raises(InvalidSecret):
        otpauth_from_uri("otpauth://totp/x?secret=0000")


ROUND_TRIP_KEYS = [
    HOTPKey(key=SECRET),
    HOTPKey(key=RFC_SECRET, name="bob", issuer="ACME", digits=8, counter=2 ** 64 - 1,
            hmac_type=HMACType.SHA512),
    HOTPKey(key="MZZHI6LHOVUGU===", name="dev:ops", digits=10),
    TOTPKey(key=SECRET, name="john.doe@email.com", issuer="ACME Co", digits=7, time_step=60,
            hmac_type=HMACType.SHA256),
    TOTPKey(key=RFC_SECRET, name="x:y z", issuer="A:B", digits=1, time_step=1),
    TOTPKey(key=SECRET, name="ünïcødé+tag@example.com", issuer="Ex&ample=Co?#"),
    TOTPKey(key=SECRET, name="", issuer="Only Issuer"),
]


@pytest.mark.parametrize("key", ROUND_TRIP_KEYS, ids=lambda k: f"{k.get_type().value}-{k.name or 'noname'}")
def test_uri_round_trip(key):
    parsed = otpauth_from_uri(key.to_uri())
    assert parsed.get_type() is key.get_type()
    assert parsed.key == key.key
    assert parsed.hmac_type is key.hmac_type
    assert parsed.digits == key.digits
    assert parsed.get_name() == key.get_name()
    assert parsed.issuer == key.issuer
    if isinstance(key, HOTPKey):
        assert parsed.counter == key.counter
    else:
        assert parsed.time_step == key.time_step


def test_from_uri_record_dispatches_on_type():
    assert isinstance(from_uri_record(URI(key_type=KeyType.HOTP, secret=SECRET)), HOTPKey)
    key = from_uri_record(URI(key_type=KeyType.TOTP, secret=SECRET))
    assert isinstance(key, TOTPKey)
    assert key.time_step == 30
