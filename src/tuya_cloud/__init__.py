"""
Tuya cloud module: request signing, token lifecycle and device probing
"""

from .client import TuyaCloudClient
from .exceptions import (
    TuyaCloudError, TokenFetchFailed, ProviderError, AuthRejected, RateLimited,
    NetworkTimeout, CloudConnectionError
)
from .models import CloudCredentials, BearerToken, Device, Availability, Observation, CycleSummary
from .prober import DeviceProber
from .signer import sign_request, build_headers, SignedRequest
from .token_cache import TokenCache

__all__ = [
    'TuyaCloudClient', 'TokenCache', 'DeviceProber',
    'sign_request', 'build_headers', 'SignedRequest',
    'CloudCredentials', 'BearerToken', 'Device', 'Availability', 'Observation', 'CycleSummary',
    'TuyaCloudError', 'TokenFetchFailed', 'ProviderError', 'AuthRejected', 'RateLimited',
    'NetworkTimeout', 'CloudConnectionError'
]
