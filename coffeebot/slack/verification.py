"""
Authorisation of incoming slash command requests
"""
import hmac
from typing import Mapping, Optional

from slack_sdk.signature import SignatureVerifier

from coffeebot.core.logging_config import get_logger

logger = get_logger("coffeebot.slack.verification")


class RequestVerifier:
    """Accepts a request with a valid Slack signature or a matching `key` parameter.

    With neither a signing secret nor an auth key configured every request
    is accepted, which is only suitable for local development.
    """

    def __init__(self, auth_key: Optional[str] = None, signing_secret: Optional[str] = None):
        self.auth_key = auth_key
        self.signature_verifier = SignatureVerifier(signing_secret) if signing_secret else None
        if not auth_key and not signing_secret:
            logger.warning("Neither AUTH_KEY nor SLACK_SIGNING_SECRET is set; all requests will be accepted")

    def is_authorised(self, body: bytes, headers: Mapping[str, str], key: Optional[str] = None) -> bool:
        if self.signature_verifier is None and not self.auth_key:
            return True

        if self.signature_verifier is not None:
            # Undecodable bytes become U+FFFD and fail the signature check
            signed_body = body.decode("utf-8", errors="replace")
            if self.signature_verifier.is_valid_request(signed_body, dict(headers)):
                return True

        if self.auth_key and key is not None:
            # compare_digest only accepts ASCII str, so compare the encoded bytes
            if hmac.compare_digest(key.encode("utf-8"), self.auth_key.encode("utf-8")):
                return True

        logger.warning("Rejected unauthorised slash command request")
        return False
