"""
Error taxonomy for Tuya cloud calls
"""

from typing import Optional


class TuyaCloudError(Exception):
    """Base class for every failure talking to the Tuya cloud"""

    @property
    def reason(self) -> str:
        """Short text stored in the observation error column"""
        return str(self)


class TokenFetchFailed(TuyaCloudError):
    """The token endpoint did not hand out a bearer token"""


class NetworkTimeout(TuyaCloudError):
    """Request exceeded its deadline"""

    @property
    def reason(self) -> str:
        return "Timeout"


class CloudConnectionError(TuyaCloudError):
    """DNS, refused or dropped connection"""

    @property
    def reason(self) -> str:
        return "Connection error"


class ProviderError(TuyaCloudError):
    """Non-success envelope returned by the provider: {success: false, code, msg}"""

    def __init__(self, code: Optional[int], msg: Optional[str]):
        self.code = code
        self.msg = msg or "Unknown API error"
        super().__init__(self.msg)

    @property
    def reason(self) -> str:
        return self.msg


class AuthRejected(ProviderError):
    """Token invalid or expired"""


class RateLimited(ProviderError):
    """Provider asked us to slow down; never retried"""
