import base64
import json

import pytest

from clinic_portal.auth import Role, decode_credential, extract_role, extract_username, read_claims
from clinic_portal.exceptions import DecodeError
from tests.conftest import make_token


def _segment(value) -> str:
    raw = json.dumps(value).encode()
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


@pytest.mark.parametrize("claims,expected", [
    ({"role": "ROLE_MD"}, "MD"),
    ({"role": "NURSE", "roles": ["DMD"]}, "NURSE"),
    ({"roles": ["DMD", "MD"], "authorities": ["ROLE_ADMIN"]}, "DMD"),
    ({"roles": [], "authorities": ["ROLE_ADMIN"]}, "ADMIN"),
    ({"authorities": ["ROLE_NURSE"], "auth": "MD"}, "NURSE"),
    ({"auth": "ROLE_DMD"}, "DMD"),
    ({"role": "", "auth": "MD"}, "MD"),
    ({}, "USER"),
    ({"role": "PHARMACIST"}, "PHARMACIST"),
])
def test_role_precedence(claims, expected):
    assert extract_role(claims) == expected


def test_role_prefix_is_stripped_once():
    assert extract_role({"role": "ROLE_ROLE_MD"}) == "ROLE_MD"
    assert extract_role({"role": extract_role({"role": "ROLE_MD"})}) == "MD"


@pytest.mark.parametrize("claims,expected", [
    ({"sub": "alice", "username": "bob"}, "alice"),
    ({"username": "bob"}, "bob"),
    ({}, ""),
])
def test_username_fallback(claims, expected):
    assert extract_username(claims) == expected


def test_decode_credential_builds_session():
    session = decode_credential(make_token({"sub": "nurse.joy", "role": "ROLE_NURSE"}))
    assert session.username == "nurse.joy"
    assert session.role == "NURSE"
    assert session.known_role is Role.NURSE
    assert session.has_clinical_access
    assert not session.is_admin


def test_unknown_role_has_no_access():
    session = decode_credential(make_token({"sub": "x", "role": "PHARMACIST"}))
    assert session.known_role is None
    assert not session.has_clinical_access
    assert not session.is_admin


def test_signature_is_not_checked():
    token = make_token({"sub": "alice", "role": "ADMIN"})
    header, payload, _ = token.split(".")
    session = decode_credential(f"{header}.{payload}.forged")
    assert session.role == "ADMIN"


@pytest.mark.parametrize("token", [
    "",
    "abc",
    "a.b",
    "a.b.c.d",
    "!!!.@@@.###",
])
def test_malformed_tokens_raise_decode_error(token):
    with pytest.raises(DecodeError):
        read_claims(token)


def test_non_object_payload_is_rejected():
    token = f"{_segment({'alg': 'HS256', 'typ': 'JWT'})}.{_segment([1, 2])}.sig"
    with pytest.raises(DecodeError):
        decode_credential(token)


def test_decode_error_message():
    with pytest.raises(DecodeError) as exc_info:
        read_claims("abc")
    assert str(exc_info.value).startswith("Failed to decode token:")


def test_only_the_payload_segment_is_read():
    payload = _segment({"sub": "dr.molar", "roles": ["ROLE_DMD"]})
    session = decode_credential(f"not-a-header.{payload}.")
    assert session.username == "dr.molar"
    assert session.role == "DMD"


@pytest.mark.parametrize("payload", ["", "a", "bm90IGpzb24", "é"])
def test_unreadable_payload_raises_decode_error(payload):
    with pytest.raises(DecodeError):
        read_claims(f"{_segment({'alg': 'HS256'})}.{payload}.sig")
