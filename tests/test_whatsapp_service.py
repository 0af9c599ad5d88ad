import io
import json
import unittest
from unittest import mock
from urllib import error

from atk_insight.config import Settings
from atk_insight.services.whatsapp_service import (
    WhatsAppGateway,
    build_auth_header,
    build_payload,
    format_phone_number,
    send_whatsapp,
    validate_api_url,
)

FONNTE_URL = "https://api.fonnte.com/send"
GRAPH_URL = "https://graph.facebook.com/v19.0/123/messages"


def _settings(**overrides):
    values = {"WHATSAPP_API_URL": FONNTE_URL, "WHATSAPP_ACCESS_TOKEN": "secret-token"}
    values.update(overrides)
    return Settings(**values)


def _response(body=b'{"status": true}', code=200):
    response = mock.MagicMock()
    response.getcode.return_value = code
    response.read.return_value = body
    response.__enter__.return_value = response
    return response


class PhoneNumberTest(unittest.TestCase):
    def test_local_number_gets_country_code(self):
        self.assertEqual(format_phone_number("0812-3456-7890"), "6281234567890")

    def test_international_number_is_kept(self):
        self.assertEqual(format_phone_number("+62 812 3456 7890"), "6281234567890")

    def test_bare_subscriber_number_is_prefixed(self):
        self.assertEqual(format_phone_number("81234567890"), "6281234567890")

    def test_empty(self):
        self.assertEqual(format_phone_number(None), "")


class PayloadTest(unittest.TestCase):
    def test_fonnte_payload(self):
        payload = build_payload(FONNTE_URL, "Alert text", "6281234567890", "62")
        self.assertEqual(payload, {"target": "6281234567890", "message": "Alert text", "countryCode": "62"})
        self.assertEqual(build_auth_header(FONNTE_URL, "tok"), "tok")

    def test_graph_payload(self):
        payload = build_payload(GRAPH_URL, "Alert text", "6281234567890")
        self.assertEqual(payload["messaging_product"], "whatsapp")
        self.assertEqual(payload["to"], "6281234567890")
        self.assertEqual(payload["text"]["body"], "Alert text")
        self.assertEqual(build_auth_header(GRAPH_URL, "tok"), "Bearer tok")
        self.assertEqual(build_auth_header(GRAPH_URL, "Bearer tok"), "Bearer tok")

    def test_validate_api_url_rejects_non_http_scheme(self):
        self.assertEqual(validate_api_url(FONNTE_URL), FONNTE_URL)
        with self.assertRaises(RuntimeError):
            validate_api_url("file:///tmp/messages")


class SendWhatsAppTest(unittest.TestCase):
    def test_posts_json_to_gateway(self):
        with mock.patch("atk_insight.services.whatsapp_service.get_settings", return_value=_settings()), \
                mock.patch("atk_insight.services.whatsapp_service.request.urlopen", return_value=_response()) as urlopen:
            send_whatsapp("Stok menipis", "08123456789")

        req = urlopen.call_args[0][0]
        self.assertEqual(req.get_method(), "POST")
        self.assertEqual(req.get_header("Authorization"), "secret-token")
        self.assertEqual(json.loads(req.data.decode("utf-8"))["target"], "628123456789")

    def test_missing_token(self):
        with mock.patch(
            "atk_insight.services.whatsapp_service.get_settings",
            return_value=_settings(WHATSAPP_ACCESS_TOKEN=None),
        ):
            with self.assertRaises(RuntimeError):
                send_whatsapp("Stok menipis", "08123456789")

    def test_gateway_rejection_raises(self):
        body = b'{"status": false, "reason": "invalid token"}'
        with mock.patch("atk_insight.services.whatsapp_service.get_settings", return_value=_settings()), \
                mock.patch("atk_insight.services.whatsapp_service.request.urlopen", return_value=_response(body)):
            with self.assertRaises(RuntimeError) as ctx:
                send_whatsapp("Stok menipis", "08123456789")
        self.assertIn("invalid token", str(ctx.exception))

    def test_network_error_raises_runtime_error(self):
        with mock.patch("atk_insight.services.whatsapp_service.get_settings", return_value=_settings()), \
                mock.patch(
                    "atk_insight.services.whatsapp_service.request.urlopen",
                    side_effect=error.URLError("connection refused"),
                ):
            with self.assertRaises(RuntimeError):
                send_whatsapp("Stok menipis", "08123456789")


class WhatsAppGatewayTest(unittest.TestCase):
    def test_graph_api_uses_bearer_token(self):
        gateway = WhatsAppGateway(GRAPH_URL, "graph-token")
        with mock.patch("atk_insight.services.whatsapp_service.request.urlopen", return_value=_response(b"{}")) as urlopen:
            gateway.send("Stok menipis", "08123456789")
        req = urlopen.call_args[0][0]
        self.assertEqual(req.get_header("Authorization"), "Bearer graph-token")
        self.assertEqual(json.loads(req.data.decode("utf-8"))["to"], "628123456789")

    def test_http_error_body_is_reported(self):
        gateway = WhatsAppGateway(FONNTE_URL, "tok")
        failure = error.HTTPError(FONNTE_URL, 500, "Server Error", {}, io.BytesIO(b"device offline"))
        with mock.patch("atk_insight.services.whatsapp_service.request.urlopen", side_effect=failure):
            with self.assertRaises(RuntimeError) as ctx:
                gateway.send("Stok menipis", "08123456789")
        self.assertEqual(str(ctx.exception), "WhatsApp API error: HTTP 500 device offline")

    def test_empty_message_is_rejected(self):
        with self.assertRaises(ValueError):
            WhatsAppGateway(FONNTE_URL, "tok").send("  ", "08123456789")


if __name__ == "__main__":
    unittest.main()
