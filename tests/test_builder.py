import json
import sys
import threading
import unittest
from pathlib import Path
from unittest.mock import patch

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import restbuilder  # noqa: E402
from restbuilder.builder import RequestBuilder  # noqa: E402
from restbuilder.callbacks import Callback  # noqa: E402
from restbuilder.config import ClientConfig  # noqa: E402
from restbuilder.connection import JsonConnectionRequest  # noqa: E402
from restbuilder.network import NetworkManager  # noqa: E402
from restbuilder.response import Response  # noqa: E402
from restbuilder.transport import TransportError, TransportResponse  # noqa: E402

WAIT_SECONDS = 5


class RecordingCallback(Callback):
    def __init__(self):
        self.responses = []
        self.errors = []
        self.done = threading.Event()

    def on_success(self, response):
        self.responses.append(response)
        self.done.set()

    def on_error(self, sender, error, code, message):
        self.errors.append((sender, error, code, message))
        self.done.set()


class BuilderConfigurationTests(unittest.TestCase):
    def test_method_is_upper_cased_and_inputs_required(self):
        self.assertEqual(RequestBuilder("post", "https://api.local").method, "POST")
        with self.assertRaises(ValueError):
            RequestBuilder("", "https://api.local")
        with self.assertRaises(ValueError):
            RequestBuilder("GET", " ")

    def test_create_request_copies_builder_state(self):
        builder = (
            RequestBuilder("PUT", "https://api.local/users/{id}/posts/{post}")
            .path_param("id", "7")
            .path_param("post", 12)
            .query_param("notify", "yes")
            .header("X-Trace", "abc")
            .body("payload")
            .timeout(2500)
            .content_type("text/plain")
        )

        request = builder.create_request(False)

        self.assertIsInstance(request, JsonConnectionRequest)
        self.assertEqual(request.url, "https://api.local/users/7/posts/12")
        self.assertEqual(builder.url, "https://api.local/users/7/posts/12")
        self.assertEqual(request.http_method, "PUT")
        self.assertTrue(request.post)
        self.assertEqual(request.request_body, "payload")
        self.assertTrue(request.write_request)
        self.assertEqual(request.timeout, 2500)
        self.assertEqual(request.content_type, "text/plain")
        self.assertEqual(request.arguments, [("notify", "yes")])
        self.assertEqual(request.request_headers, {"X-Trace": "abc"})
        self.assertTrue(request.read_response_for_errors)
        self.assertTrue(request.duplicate_supported)
        self.assertFalse(request.parse_json)

    def test_get_request_is_not_post_and_has_no_body(self):
        request = RequestBuilder("GET", "https://api.local/").create_request(True)

        self.assertFalse(request.post)
        self.assertFalse(request.write_request)
        self.assertIsNone(request.timeout)
        self.assertIsNone(request.content_type)
        self.assertTrue(request.parse_json)

    def test_last_write_wins_for_maps(self):
        builder = (
            RequestBuilder("GET", "https://api.local/{v}")
            .query_param("q", "a")
            .query_param("q", "b")
            .header("Accept", "text/plain")
            .accept_json()
            .path_param("v", "1")
            .path_param("v", "2")
        )

        request = builder.create_request(False)

        self.assertEqual(request.arguments, [("q", "b")])
        self.assertEqual(request.request_headers["Accept"], "application/json")
        self.assertEqual(request.url, "https://api.local/2")

    def test_json_content_sets_content_type_and_accept(self):
        builder = RequestBuilder("POST", "https://api.local").json_content()

        self.assertEqual(builder.request_content_type, "application/json")
        self.assertEqual(builder.headers["Accept"], "application/json")

    def test_json_body_serializes_payload(self):
        builder = RequestBuilder("POST", "https://api.local").json_body({"name": "ann", "tags": [1]})

        self.assertEqual(json.loads(builder.request_body), {"name": "ann", "tags": [1]})
        self.assertEqual(builder.request_content_type, "application/json")

    def test_basic_auth_header_is_base64_without_newline(self):
        builder = RequestBuilder("GET", "https://api.local").basic_auth("user", "pass")

        self.assertEqual(builder.headers["Authorization"], "Basic dXNlcjpwYXNz")

    def test_bearer_auth_header(self):
        builder = RequestBuilder("GET", "https://api.local").bearer_auth("tkn")

        self.assertEqual(builder.headers["Authorization"], "Bearer tkn")

    def test_gzip_is_deprecated_and_sets_accept_encoding(self):
        builder = RequestBuilder("GET", "https://api.local")

        with self.assertWarns(DeprecationWarning):
            builder.gzip()

        self.assertTrue(builder.is_gzip)
        self.assertEqual(builder.headers["Accept-Encoding"], "gzip")

    def test_timeout_must_be_positive(self):
        with self.assertRaises(ValueError):
            RequestBuilder("GET", "https://api.local").timeout(0)

    def test_rest_factories_choose_method(self):
        manager = object()
        self.assertEqual(restbuilder.get("https://a").method, "GET")
        self.assertEqual(restbuilder.post("https://a").method, "POST")
        self.assertEqual(restbuilder.put("https://a").method, "PUT")
        self.assertEqual(restbuilder.patch("https://a").method, "PATCH")
        self.assertEqual(restbuilder.delete("https://a").method, "DELETE")
        self.assertEqual(restbuilder.head("https://a").method, "HEAD")
        self.assertEqual(restbuilder.options("https://a").method, "OPTIONS")
        self.assertIs(restbuilder.request("trace", "https://a", manager).network_manager, manager)


class BuilderExecutionTests(unittest.TestCase):
    def setUp(self):
        self.manager = NetworkManager(ClientConfig(max_workers=2))
        self.sent = []

    def tearDown(self):
        self.manager.shutdown()

    def _patch_send(self, status_code=200, content=b"", reason="OK", error=None):
        def fake_send(outgoing, config, scope=None):
            self.sent.append(outgoing)
            if error is not None:
                raise error
            return TransportResponse(status_code=status_code, reason=reason, headers={"X-Test": "1"}, content=content)

        return patch("restbuilder.network.send_request", side_effect=fake_send)

    def _builder(self, url="https://api.local/items/{id}"):
        return RequestBuilder("GET", url, self.manager).path_param("id", "5")

    def test_get_as_string_decodes_utf8(self):
        with self._patch_send(content="héllo".encode("utf-8")):
            response = self._builder().get_as_string()

        self.assertEqual(response.response_code, 200)
        self.assertEqual(response.response_data, "héllo")
        self.assertIsNone(response.response_error_message)
        self.assertEqual(response.headers, {"X-Test": "1"})
        self.assertEqual(self.sent[0].url, "https://api.local/items/5")

    def test_get_as_bytes_returns_raw_body_even_for_errors(self):
        with self._patch_send(status_code=404, reason="Not Found", content=b"\xffmissing"):
            response = self._builder().get_as_bytes()

        self.assertEqual(response.response_code, 404)
        self.assertEqual(response.response_data, b"\xffmissing")
        self.assertEqual(response.response_error_message, "Not Found")
        self.assertFalse(response.is_ok)

    def test_get_as_json_map_blocking(self):
        with self._patch_send(content=b'{"id": 5}'):
            response = self._builder().get_as_json_map()

        self.assertEqual(response.response_data, {"id": 5})
        self.assertTrue(response.is_ok)

    def test_blocking_call_reports_transport_failure(self):
        with self._patch_send(error=TransportError("timed out")):
            response = self._builder().get_as_string()

        self.assertEqual(response.response_code, -1)
        self.assertIsNone(response.response_data)
        self.assertEqual(response.response_error_message, "timed out")

    def test_get_as_string_async_delivers_response(self):
        received = []
        done = threading.Event()

        def on_success(response):
            received.append(response)
            done.set()

        with self._patch_send(content=b"ok"):
            self._builder().get_as_string_async(on_success)
            self.assertTrue(done.wait(WAIT_SECONDS))

        self.assertIsInstance(received[0], Response)
        self.assertEqual(received[0].response_data, "ok")

    def test_get_as_bytes_async_accepts_callback_object(self):
        callback = RecordingCallback()

        with self._patch_send(content=b"\x01\x02"):
            self._builder().get_as_bytes_async(callback)
            self.assertTrue(callback.done.wait(WAIT_SECONDS))

        self.assertEqual(callback.responses[0].response_data, b"\x01\x02")

    def test_fetch_as_json_map_success(self):
        callback = RecordingCallback()

        with self._patch_send(content=b'[{"id": 1}]'):
            request = self._builder().get_as_json_map(callback.on_success, callback.on_error)
            self.assertTrue(callback.done.wait(WAIT_SECONDS))

        self.assertIsInstance(request, JsonConnectionRequest)
        self.assertEqual(callback.responses[0].response_data, {"root": [{"id": 1}]})
        self.assertEqual(callback.errors, [])

    def test_json_error_code_goes_to_failure_only(self):
        callback = RecordingCallback()

        with self._patch_send(status_code=404, reason="Not Found", content=b'{"error": "missing"}'):
            self._builder().get_as_json_map_async(callback)
            self.assertTrue(callback.done.wait(WAIT_SECONDS))
            self.manager.shutdown()

        self.assertEqual(callback.responses, [])
        self.assertEqual(callback.errors, [(None, None, 404, "Not Found")])

    def test_json_error_code_without_failure_callback_reaches_success(self):
        callback = RecordingCallback()

        with self._patch_send(status_code=500, reason="Server Error", content=b'{"error": "x"}'):
            self._builder().fetch_as_json_map(callback)
            self.assertTrue(callback.done.wait(WAIT_SECONDS))

        self.assertEqual(callback.responses[0].response_code, 500)
        self.assertEqual(callback.responses[0].response_data, {"error": "x"})

    def test_json_transport_failure_goes_to_failure_callback(self):
        callback = RecordingCallback()
        failure = TransportError("refused")

        with self._patch_send(error=failure):
            self._builder().get_as_json_map_async(callback)
            self.assertTrue(callback.done.wait(WAIT_SECONDS))

        sender, error, code, message = callback.errors[0]
        self.assertIsNone(sender)
        self.assertIs(error, failure)
        self.assertEqual(code, -1)
        self.assertEqual(message, "refused")

    def test_get_as_json_map_async_requires_full_callback(self):
        with self.assertRaises(TypeError):
            self._builder().get_as_json_map_async(lambda response: None)

    def test_on_error_without_success_callback_is_rejected(self):
        with self.assertRaises(ValueError):
            self._builder().get_as_json_map(None, lambda *args: None)

    def test_killed_async_request_never_calls_back(self):
        release = threading.Event()
        callback = RecordingCallback()

        def slow_send(outgoing, config, scope=None):
            release.wait(WAIT_SECONDS)
            return TransportResponse(status_code=200, content=b"{}")

        with patch("restbuilder.network.send_request", side_effect=slow_send):
            request = self._builder().get_as_json_map(callback)
            request.kill()
            release.set()
            self.manager.shutdown()

        self.assertTrue(request.killed)
        self.assertEqual(callback.responses, [])


class JsonRoutingBoundaryTests(unittest.TestCase):
    def _route(self, status_code, with_failure):
        manager = NetworkManager(ClientConfig(max_workers=1))
        callback = RecordingCallback()

        def fake_send(outgoing, config, scope=None):
            return TransportResponse(status_code=status_code, reason="Status", content=b'{"a": 1}')

        with patch("restbuilder.network.send_request", side_effect=fake_send):
            builder = RequestBuilder("GET", "https://api.local/route", manager)
            if with_failure:
                builder.fetch_as_json_map(callback.on_success, callback.on_error)
            else:
                builder.fetch_as_json_map(callback.on_success)
            manager.shutdown()

        return callback

    def test_codes_around_the_success_ceiling_with_failure_callback(self):
        # (code, success calls, failure calls)
        expected = [(199, 1, 1), (200, 1, 0), (300, 1, 0), (310, 1, 1), (311, 0, 1), (404, 0, 1)]
        for code, successes, failures in expected:
            with self.subTest(code=code):
                callback = self._route(code, with_failure=True)

                self.assertEqual(len(callback.responses), successes)
                self.assertEqual(len(callback.errors), failures)
                for sender, error, error_code, message in callback.errors:
                    self.assertIsNone(sender)
                    self.assertIsNone(error)
                    self.assertEqual(error_code, code)
                    self.assertEqual(message, "Status")

    def test_every_code_reaches_success_without_failure_callback(self):
        for code in (199, 300, 310, 311, 500):
            with self.subTest(code=code):
                callback = self._route(code, with_failure=False)

                self.assertEqual(len(callback.responses), 1)
                self.assertEqual(callback.responses[0].response_code, code)
                self.assertEqual(callback.responses[0].response_data, {"a": 1})


class ClientFailureTests(unittest.TestCase):
    def setUp(self):
        self.manager = NetworkManager(ClientConfig(max_workers=1, default_timeout_ms=2000))

    def tearDown(self):
        self.manager.shutdown()

    def test_header_values_are_coerced_to_strings(self):
        builder = RequestBuilder("GET", "https://api.local").header("X-Count", 5)

        self.assertEqual(builder.headers["X-Count"], "5")

    def test_blocking_call_with_unencodable_header_returns_failed_response(self):
        builder = RequestBuilder("GET", "http://127.0.0.1:9/x", self.manager).header("X-Name", "€")

        response = builder.get_as_string()

        self.assertEqual(response.response_code, -1)
        self.assertIsNone(response.response_data)
        self.assertTrue(response.response_error_message)

    def test_async_json_with_unencodable_header_reaches_on_error(self):
        callback = RecordingCallback()

        RequestBuilder("GET", "http://127.0.0.1:9/x", self.manager).header("X-Name", "€").get_as_json_map_async(callback)

        self.assertTrue(callback.done.wait(WAIT_SECONDS))
        self.assertEqual(callback.responses, [])
        sender, error, code, _message = callback.errors[0]
        self.assertIsNone(sender)
        self.assertIsInstance(error, Exception)
        self.assertEqual(code, -1)

    def test_string_and_bytes_async_never_report_transport_errors(self):
        string_callback = RecordingCallback()
        bytes_callback = RecordingCallback()

        def failing_send(outgoing, config, scope=None):
            raise TransportError("refused")

        with patch("restbuilder.network.send_request", side_effect=failing_send):
            RequestBuilder("GET", "https://api.local/s", self.manager).get_as_string_async(string_callback)
            RequestBuilder("GET", "https://api.local/b", self.manager).get_as_bytes_async(bytes_callback)
            self.manager.shutdown()

        for callback in (string_callback, bytes_callback):
            self.assertEqual(callback.responses, [])
            self.assertEqual(callback.errors, [])
