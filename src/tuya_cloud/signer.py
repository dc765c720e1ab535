"""
Tuya OpenAPI request signing (HMAC-SHA256)
"""

import hashlib
import hmac
import json
import time
from dataclasses import dataclass
from typing import Dict, Optional, Any

from .models import CloudCredentials

SIGN_METHOD = "HMAC-SHA256"
BODY_METHODS = ("POST", "PUT")


@dataclass(frozen=True)
class SignedRequest:
    """Timestamp and signature for one request"""
    t: str
    sign: str


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def canonical_query(query: Optional[Dict[str, Any]]) -> str:
    """Sort query entries by key and join as key=value&key=value"""
    if not query:
        return ""
    entries = sorted(query.items(), key=lambda item: str(item[0]))
    return "&".join(f"{key}={_format_value(value)}" for key, value in entries)


def content_hash(method: str, body: Optional[Dict[str, Any]] = None) -> str:
    """SHA-256 of the serialized body; GET and DELETE hash the empty string"""
    body_str = ""
    if method.upper() in BODY_METHODS:
        body_str = json.dumps(body or {}, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(body_str.encode("utf-8")).hexdigest().lower()


def string_to_sign(path: str, method: str,
                   query: Optional[Dict[str, Any]] = None,
                   body: Optional[Dict[str, Any]] = None) -> str:
    method = method.upper()
    sorted_query = canonical_query(query)
    url = f"{path}?{sorted_query}" if sorted_query else path
    return f"{method}\n{content_hash(method, body)}\n\n{url}"


def sign_request(credentials: CloudCredentials, path: str, method: str = "GET",
                 query: Optional[Dict[str, Any]] = None,
                 body: Optional[Dict[str, Any]] = None,
                 token: Optional[str] = None,
                 timestamp: Optional[str] = None) -> SignedRequest:
    """
    Sign a request for the Tuya OpenAPI.
    payload = client_id + access_token + t + stringToSign, signed with the access key
    """
    t = timestamp if timestamp is not None else str(int(time.time() * 1000))
    payload = f"{credentials.access_id}{token or ''}{t}{string_to_sign(path, method, query, body)}"
    sign = hmac.new(
        credentials.access_key.encode("utf-8"),
        payload.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest().upper()
    return SignedRequest(t=t, sign=sign)


def build_headers(credentials: CloudCredentials, signed: SignedRequest,
                  token: Optional[str] = None) -> Dict[str, str]:
    headers = {
        "client_id": credentials.access_id,
        "sign": signed.sign,
        "t": signed.t,
        "sign_method": SIGN_METHOD,
    }
    if token:
        headers["access_token"] = token
    return headers
