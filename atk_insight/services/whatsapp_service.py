import json
import re
from dataclasses import dataclass
from urllib import error, request
from urllib.parse import urlparse

from atk_insight.config import get_settings


_NON_DIGIT_RE = re.compile(r"\D+")
_ALLOWED_HTTP_SCHEMES = {"http", "https"}
_TIMEOUT_SECONDS = 15


def format_phone_number(phone, country_code="62"):
    """Digits only, with a leading trunk 0 replaced by the country code."""
    digits = _NON_DIGIT_RE.sub("", str(phone or ""))
    if digits.startswith("0"):
        digits = country_code + digits[1:]
    if digits and not digits.startswith(country_code):
        digits = country_code + digits
    return digits


def _is_graph_api(api_url):
    return "graph.facebook.com" in api_url.lower()


def build_payload(api_url, message, phone, country_code="62"):
    if _is_graph_api(api_url):
        return {
            "messaging_product": "whatsapp",
            "to": phone,
            "type": "text",
            "text": {"body": message},
        }
    return {"target": phone, "message": message, "countryCode": country_code}


def build_auth_header(api_url, access_token):
    # Fonnte takes the raw device token, the Graph API a bearer token.
    if not _is_graph_api(api_url) or access_token.lower().startswith("bearer "):
        return access_token
    return "Bearer {}".format(access_token)


def validate_api_url(api_url):
    parsed = urlparse(api_url)
    if parsed.scheme.lower() not in _ALLOWED_HTTP_SCHEMES or not parsed.netloc:
        raise RuntimeError("WHATSAPP_API_URL must be an absolute HTTP(S) URL")
    return api_url


def _read_error_body(exc):
    try:
        return (exc.read() or b"").decode("utf-8", errors="replace").strip()
    except (OSError, ValueError):
        return ""


def _check_gateway_response(raw_body):
    """Fonnte answers HTTP 200 with ``{"status": false}`` on rejected sends."""
    if not raw_body:
        return
    try:
        data = json.loads(raw_body.decode("utf-8", errors="replace"))
    except ValueError:
        return
    if isinstance(data, dict) and data.get("status") is False:
        reason = data.get("reason") or data.get("detail") or "unknown"
        raise RuntimeError("WhatsApp API rejected message: {}".format(reason))


@dataclass(frozen=True)
class WhatsAppGateway:
    api_url: str
    access_token: str
    country_code: str = "62"

    @classmethod
    def from_settings(cls, settings=None):
        settings = settings or get_settings()
        api_url = (settings.WHATSAPP_API_URL or "").strip()
        access_token = (settings.WHATSAPP_ACCESS_TOKEN or "").strip()
        if not api_url:
            raise RuntimeError("WHATSAPP_API_URL is not configured")
        if not access_token:
            raise RuntimeError("WHATSAPP_ACCESS_TOKEN is not configured")
        return cls(validate_api_url(api_url), access_token, settings.WHATSAPP_COUNTRY_CODE)

    def _request(self, message, target):
        body = json.dumps(build_payload(self.api_url, message, target, self.country_code)).encode("utf-8")
        return request.Request(
            self.api_url,
            data=body,
            method="POST",
            headers={
                "Content-Type": "application/json",
                "Authorization": build_auth_header(self.api_url, self.access_token),
            },
        )

    def send(self, message, phone):
        message = str(message or "").strip()
        if not message:
            raise ValueError("message is required")
        target = format_phone_number(phone, self.country_code)
        if not target:
            raise ValueError("phone is required")

        try:
            with request.urlopen(self._request(message, target), timeout=_TIMEOUT_SECONDS) as response:  # nosec B310
                status_code = response.getcode()
                if not 200 <= status_code < 300:
                    raise RuntimeError("WhatsApp API error: HTTP {}".format(status_code))
                _check_gateway_response(response.read())
        except error.HTTPError as exc:
            detail = _read_error_body(exc)
            suffix = " {}".format(detail) if detail else ""
            raise RuntimeError("WhatsApp API error: HTTP {}{}".format(exc.code, suffix)) from exc
        except error.URLError as exc:
            raise RuntimeError("WhatsApp API error: {}".format(exc.reason)) from exc


def send_whatsapp(message, phone):
    WhatsAppGateway.from_settings().send(message, phone)


__all__ = [
    "WhatsAppGateway",
    "build_auth_header",
    "build_payload",
    "format_phone_number",
    "send_whatsapp",
    "validate_api_url",
]
