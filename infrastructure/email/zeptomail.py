"""ZeptoMail implementation of EmailNotifier.

Sends OTP messages through the ZeptoMail HTTP API with an async httpx client.
HTML bodies are rendered from Jinja2 templates; a plain-text alternative is
always included.
"""

import os
from typing import Optional

import httpx
from jinja2 import Environment, FileSystemLoader, select_autoescape

from config import EmailSettings
from errors import EmailDeliveryError
from schemas.models.otp import OtpPurpose
from shared.logging import get_logger, hash_ip

log = get_logger(__name__)

_ZEPTO_API_URL = "https://api.zeptomail.com/v1.1/email"
_DEFAULT_TEMPLATE_DIR = os.path.join(
    os.path.dirname(os.path.dirname(os.path.dirname(__file__))),
    "templates",
    "emails",
)

_MESSAGES = {
    OtpPurpose.SIGNUP: {
        "subject": "Verify your Inkwell account",
        "heading": "Verify your email address",
        "intro": "Thanks for joining Inkwell. Use the code below to verify your account:",
    },
    OtpPurpose.RESET: {
        "subject": "Reset your Inkwell password",
        "heading": "Password reset request",
        "intro": "We received a request to reset your password. Use the code below to continue:",
    },
}


class ZeptoMailNotifier:
    def __init__(
        self,
        settings: EmailSettings,
        http_client: Optional[httpx.AsyncClient] = None,
        app_name: str = "Inkwell",
        expiry_minutes: int = 5,
        template_dir: str = _DEFAULT_TEMPLATE_DIR,
    ) -> None:
        self._settings = settings
        self._http = http_client or httpx.AsyncClient(
            timeout=settings.email_timeout_seconds
        )
        self._app_name = app_name
        self._expiry_minutes = expiry_minutes
        self._jinja = Environment(
            loader=FileSystemLoader(template_dir),
            autoescape=select_autoescape(["html", "xml"]),
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def send_otp(
        self, email: str, code: str, purpose: OtpPurpose, ip_address: str
    ) -> None:
        copy = _MESSAGES[purpose]
        html_body = self._jinja.get_template("otp.html").render(
            app_name=self._app_name,
            heading=copy["heading"],
            intro=copy["intro"],
            otp_code=code,
            expiry_minutes=self._expiry_minutes,
            ip_address=ip_address,
        )
        text_body = (
            f"{copy['heading']} - {self._app_name}\n\n"
            f"{copy['intro']}\n\n"
            f"    {code}\n\n"
            f"This code expires in {self._expiry_minutes} minutes.\n"
            f"Request IP: {ip_address}\n\n"
            f"If you didn't request this, you can ignore this email."
        )
        await self._send(email, copy["subject"], html_body, text_body, ip_address)

    async def _send(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: str,
        ip_address: str,
    ) -> None:
        if not self._settings.zepto_api_token:
            log.error("email_send_failed", reason="token_not_configured")
            raise EmailDeliveryError("Email delivery is not configured")

        payload: dict = {
            "from": {
                "address": self._settings.zepto_from_email,
                "name": self._settings.zepto_from_name,
            },
            "to": [{"email_address": {"address": to_email, "name": to_email}}],
            "subject": subject,
            "htmlbody": html_body,
            "textbody": text_body,
        }

        token = self._settings.zepto_api_token
        if not token.startswith("Zoho-enczapikey "):
            token = f"Zoho-enczapikey {token}"

        headers = {"Authorization": token, "Content-Type": "application/json"}

        try:
            response = await self._http.post(_ZEPTO_API_URL, json=payload, headers=headers)
        except httpx.HTTPError as e:
            log.error(
                "email_send_error",
                subject=subject,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise EmailDeliveryError("Failed to send email. Please try again.") from e

        if response.status_code not in (200, 201, 202):
            log.error(
                "email_send_failed",
                subject=subject,
                status_code=response.status_code,
                response=response.text[:200],
            )
            raise EmailDeliveryError("Failed to send email. Please try again.")

        log.info("email_sent_success", subject=subject, ip_hash=hash_ip(ip_address))
