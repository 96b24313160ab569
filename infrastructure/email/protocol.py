"""EmailNotifier protocol — services depend on this, not the concrete implementation."""

from typing import Protocol

from schemas.models.otp import OtpPurpose


class EmailNotifier(Protocol):
    async def send_otp(
        self, email: str, code: str, purpose: OtpPurpose, ip_address: str
    ) -> None:
        """Deliver *code* to *email*; raise EmailDeliveryError on failure."""
        ...
