"""
Transport Integration Tests

Module: tests.test_transports

Runs a real AuthServer on 127.0.0.1 (ephemeral port) behind each
transport binding:
- TCP transport driven by raw asyncio streams (framing, chunked bodies,
  100-continue, keep-alive, dropped connections)
- aiohttp transport driven by aiohttp.ClientSession
"""

import asyncio
import json
import os
import shutil
import tempfile
import unittest

import aiohttp

from auth_server.core.auth_server import AuthServer
from auth_server.core.config import ServerConfig


SECRET = "test-secret-key-at-least-32-characters-long!!!!"

SIGNUP = {"email": "a@x.com", "password": "longenough1", "name": "A"}
LOGIN = {"email": "a@x.com", "password": "longenough1"}


async def read_response(reader):
    """Read one HTTP/1.1 response; returns (status, headers, json body or None)"""
    head = await asyncio.wait_for(reader.readuntil(b"\r\n\r\n"), timeout=5)
    lines = head.decode("latin-1").split("\r\n")
    status = int(lines[0].split(" ")[1])

    headers = {}
    for line in lines[1:]:
        if not line:
            continue
        name, _, value = line.partition(":")
        name = name.strip().lower()
        value = value.strip()
        if name in headers:
            headers[name] = headers[name] + "\n" + value
        else:
            headers[name] = value

    length = int(headers.get("content-length", "0"))
    body = await asyncio.wait_for(reader.readexactly(length), timeout=5) if length else b""
    return status, headers, json.loads(body) if body else None


def build_request(method, path, body=None, headers=None):
    raw = json.dumps(body).encode() if isinstance(body, dict) else (body or b"")
    lines = [f"{method} {path} HTTP/1.1", "Host: localhost"]
    if body is not None:
        lines.append("Content-Type: application/json")
        lines.append(f"Content-Length: {len(raw)}")
    for name, value in (headers or {}).items():
        lines.append(f"{name}: {value}")
    return ("\r\n".join(lines) + "\r\n\r\n").encode() + raw


class ServerTestCase(unittest.TestCase):
    """Temp snapshot + server factory"""

    transport = "tcp"

    def setUp(self):
        """Setup before each test"""
        self.test_dir = tempfile.mkdtemp()
        self.snapshot_path = os.path.join(self.test_dir, "db.json")

    def tearDown(self):
        """Cleanup after each test"""
        if os.path.exists(self.test_dir):
            shutil.rmtree(self.test_dir)

    def make_server(self, **overrides):
        options = dict(
            jwt_secret_key=SECRET,
            bcrypt_rounds=4,
            snapshot_path=self.snapshot_path,
            transport=self.transport,
            host="127.0.0.1",
            port=0,
        )
        options.update(overrides)
        return AuthServer(ServerConfig(**options))

    def serve(self, scenario, **overrides):
        """Run scenario(server) against a started server, stopping it afterwards"""
        async def run():
            server = self.make_server(**overrides)
            await server.start()
            try:
                return await scenario(server)
            finally:
                await server.stop()

        return asyncio.run(run())


class TestTCPTransport(ServerTestCase):

    transport = "tcp"

    async def exchange(self, port, data):
        reader, writer = await asyncio.open_connection("127.0.0.1", port)
        try:
            writer.write(data)
            await writer.drain()
            return await read_response(reader)
        finally:
            writer.close()
            await writer.wait_closed()

    def test_signup_login_protected(self):
        """Test the session flow over Content-Length bodies"""
        async def scenario(server):
            signup = await self.exchange(server.port, build_request("POST", "/api/signup", SIGNUP))
            login = await self.exchange(server.port, build_request("POST", "/api/login", LOGIN))
            token = login[2]["token"]
            protected = await self.exchange(server.port, build_request(
                "GET", "/protected", headers={"Authorization": f"Bearer {token}"}
            ))
            return signup, login, protected

        signup, login, protected = self.serve(scenario)

        status, headers, body = signup
        self.assertEqual(status, 200)
        self.assertIn("token", body)
        self.assertTrue(headers["set-cookie"].startswith(f"token={body['token']}"))
        self.assertIn("HttpOnly", headers["set-cookie"])
        self.assertIn("Secure", headers["set-cookie"])
        self.assertIn("SameSite=None", headers["set-cookie"])
        self.assertIn("x-ratelimit-remaining", headers)

        self.assertEqual(login[0], 200)
        self.assertEqual(protected[0], 200)
        self.assertEqual(protected[2], {"message": "Hello from protected endpoint."})

    def test_chunked_body(self):
        """Test a chunked transfer-encoded signup"""
        raw = json.dumps(SIGNUP).encode()
        pieces = [raw[:5], raw[5:17], raw[17:]]

        async def scenario(server):
            reader, writer = await asyncio.open_connection("127.0.0.1", server.port)
            writer.write(
                b"POST /api/signup HTTP/1.1\r\nHost: localhost\r\n"
                b"Transfer-Encoding: chunked\r\nConnection: close\r\n\r\n"
            )
            for piece in pieces:
                writer.write(f"{len(piece):x}\r\n".encode() + piece + b"\r\n")
                await writer.drain()
                await asyncio.sleep(0.01)
            writer.write(b"0\r\n\r\n")
            await writer.drain()

            response = await read_response(reader)
            writer.close()
            await writer.wait_closed()
            return response, len(server.store)

        (status, _, body), users = self.serve(scenario)
        self.assertEqual(status, 200)
        self.assertIn("token", body)
        self.assertEqual(users, 1)

    def test_expect_continue(self):
        """Test the interim 100 response before the body is sent"""
        raw = json.dumps(SIGNUP).encode()

        async def scenario(server):
            reader, writer = await asyncio.open_connection("127.0.0.1", server.port)
            writer.write(
                b"POST /api/signup HTTP/1.1\r\nHost: localhost\r\nExpect: 100-continue\r\n"
                + f"Content-Length: {len(raw)}\r\n\r\n".encode()
            )
            await writer.drain()
            interim = await asyncio.wait_for(reader.readuntil(b"\r\n\r\n"), timeout=5)
            writer.write(raw)
            await writer.drain()

            response = await read_response(reader)
            writer.close()
            await writer.wait_closed()
            return interim, response

        interim, (status, _, _) = self.serve(scenario)
        self.assertTrue(interim.startswith(b"HTTP/1.1 100"))
        self.assertEqual(status, 200)

    def test_keep_alive(self):
        """Test several requests on one connection"""
        async def scenario(server):
            reader, writer = await asyncio.open_connection("127.0.0.1", server.port)
            responses = []
            for request in (
                build_request("GET", "/unprotected"),
                build_request("POST", "/api/signup", SIGNUP),
                build_request("POST", "/api/login", LOGIN),
            ):
                writer.write(request)
                await writer.drain()
                responses.append(await read_response(reader))
            writer.close()
            await writer.wait_closed()
            return responses

        responses = self.serve(scenario)
        self.assertEqual([r[0] for r in responses], [200, 200, 200])
        self.assertEqual(responses[0][1]["connection"], "keep-alive")

    def test_connection_close(self):
        """Test the server honours Connection: close"""
        async def scenario(server):
            reader, writer = await asyncio.open_connection("127.0.0.1", server.port)
            writer.write(build_request("GET", "/unprotected", headers={"Connection": "close"}))
            await writer.drain()
            response = await read_response(reader)
            trailing = await asyncio.wait_for(reader.read(), timeout=5)
            writer.close()
            await writer.wait_closed()
            return response, trailing

        (status, headers, _), trailing = self.serve(scenario)
        self.assertEqual(status, 200)
        self.assertEqual(headers["connection"], "close")
        self.assertEqual(trailing, b"")

    def test_dropped_connection_stores_nothing(self):
        """Test a client vanishing mid-body leaves no user behind"""
        raw = json.dumps(SIGNUP).encode()

        async def scenario(server):
            reader, writer = await asyncio.open_connection("127.0.0.1", server.port)
            writer.write(
                b"POST /api/signup HTTP/1.1\r\nHost: localhost\r\n"
                + f"Content-Length: {len(raw) + 50}\r\n\r\n".encode()
                + raw[:20]
            )
            await writer.drain()
            writer.close()
            await writer.wait_closed()

            for _ in range(100):
                if server.transport.get_client_count() == 0:
                    break
                await asyncio.sleep(0.02)
            return len(server.store)

        self.assertEqual(self.serve(scenario), 0)

    def test_oversized_chunk_rejected_early(self):
        """Test a huge declared chunk answers 413 without waiting for all of it"""
        async def scenario(server):
            reader, writer = await asyncio.open_connection("127.0.0.1", server.port)
            writer.write(
                b"POST /api/signup HTTP/1.1\r\nHost: localhost\r\n"
                b"Transfer-Encoding: chunked\r\n\r\n"
                + f"{100000:x}\r\n".encode()
                + b"x" * 3000
            )
            await writer.drain()

            response = await read_response(reader)
            writer.close()
            await writer.wait_closed()
            return response

        status, headers, body = self.serve(scenario, max_body_size=1000)
        self.assertEqual(status, 413)
        self.assertEqual(body, {"message": "Request body too large."})
        self.assertEqual(headers["connection"], "close")

    def test_oversized_content_length_rejected(self):
        """Test a Content-Length body over the limit"""
        async def scenario(server):
            reader, writer = await asyncio.open_connection("127.0.0.1", server.port)
            writer.write(
                b"POST /api/signup HTTP/1.1\r\nHost: localhost\r\n"
                b"Content-Length: 100000\r\n\r\n"
                + b"x" * 3000
            )
            await writer.drain()

            response = await read_response(reader)
            writer.close()
            await writer.wait_closed()
            return response

        status, _, _ = self.serve(scenario, max_body_size=1000)
        self.assertEqual(status, 413)

    def test_chunk_split_across_reads(self):
        """Test one large chunk is delivered in slices and still decodes"""
        raw = json.dumps({**SIGNUP, "name": "N" * 5000}).encode()

        async def scenario(server):
            server.transport.config.read_chunk_size = 512
            reader, writer = await asyncio.open_connection("127.0.0.1", server.port)
            writer.write(
                b"POST /api/signup HTTP/1.1\r\nHost: localhost\r\n"
                b"Transfer-Encoding: chunked\r\nConnection: close\r\n\r\n"
                + f"{len(raw):x}\r\n".encode() + raw + b"\r\n0\r\n\r\n"
            )
            await writer.drain()

            response = await read_response(reader)
            writer.close()
            await writer.wait_closed()
            return response, server.store.list_users()

        (status, _, _), users = self.serve(scenario)
        self.assertEqual(status, 200)
        self.assertEqual(users[0].name, "N" * 5000)

    def test_bad_request_line(self):
        """Test an unparseable request head"""
        async def scenario(server):
            return await self.exchange(server.port, b"GARBAGE\r\n\r\n")

        status, headers, _ = self.serve(scenario)
        self.assertEqual(status, 400)
        self.assertEqual(headers["connection"], "close")

    def test_malformed_json(self):
        """Test a body that isn't JSON"""
        async def scenario(server):
            return await self.exchange(
                server.port, build_request("POST", "/api/signup", b"{nope")
            )

        status, _, body = self.serve(scenario)
        self.assertEqual(status, 400)
        self.assertEqual(body, {"message": "Invalid request body."})

    def test_stop_saves_snapshot(self):
        """Test shutdown writes the snapshot even with autosave off"""
        async def scenario(server):
            return await self.exchange(server.port, build_request("POST", "/api/signup", SIGNUP))

        status, _, _ = self.serve(scenario, autosave=False)
        self.assertEqual(status, 200)

        with open(self.snapshot_path, encoding="utf-8") as f:
            data = json.load(f)
        self.assertEqual([entry["email"] for entry in data], ["a@x.com"])

    def test_restart_keeps_users(self):
        """Test users survive a restart through the snapshot"""
        async def first(server):
            return await self.exchange(server.port, build_request("POST", "/api/signup", SIGNUP))

        async def second(server):
            return await self.exchange(server.port, build_request("POST", "/api/login", LOGIN))

        self.assertEqual(self.serve(first)[0], 200)
        self.assertEqual(self.serve(second)[0], 200)

    def test_status(self):
        """Test status reporting while running"""
        async def scenario(server):
            return server.get_status()

        status = self.serve(scenario)
        self.assertTrue(status.is_running)
        self.assertEqual(status.transport, "tcp")
        self.assertIsNotNone(status.port)
        self.assertEqual(status.users, 0)


class TestAioHTTPTransport(ServerTestCase):

    transport = "aiohttp"

    def url(self, server, path):
        return f"http://127.0.0.1:{server.port}{path}"

    def test_signup_login_protected(self):
        """Test the session flow through aiohttp"""
        async def scenario(server):
            async with aiohttp.ClientSession() as session:
                async with session.post(self.url(server, "/api/signup"), json=SIGNUP) as resp:
                    signup = (resp.status, resp.headers.getall("Set-Cookie"), await resp.json())
                async with session.post(self.url(server, "/api/login"), json=LOGIN) as resp:
                    login = (resp.status, await resp.json())
                async with session.post(
                    self.url(server, "/protected"), json={"token": login[1]["token"]}
                ) as resp:
                    protected = (resp.status, await resp.json())
            return signup, login, protected

        signup, login, protected = self.serve(scenario)

        status, cookies, body = signup
        self.assertEqual(status, 200)
        self.assertEqual(len(cookies), 1)
        self.assertTrue(cookies[0].startswith(f"token={body['token']}"))
        self.assertIn("HttpOnly", cookies[0])
        self.assertIn("Secure", cookies[0])
        self.assertIn("SameSite=None", cookies[0])

        self.assertEqual(login[0], 200)
        self.assertEqual(protected, (200, {"message": "Hello from protected endpoint."}))

    def test_chunked_upload(self):
        """Test a streamed request body"""
        raw = json.dumps(SIGNUP).encode()

        async def body():
            for i in range(0, len(raw), 4):
                yield raw[i:i + 4]
                await asyncio.sleep(0)

        async def scenario(server):
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    self.url(server, "/api/signup"),
                    data=body(),
                    headers={"Content-Type": "application/json"},
                ) as resp:
                    return resp.status, await resp.json()

        status, body_json = self.serve(scenario)
        self.assertEqual(status, 200)
        self.assertIn("token", body_json)

    def test_bearer_without_body(self):
        """Test protected GET with an Authorization header"""
        async def scenario(server):
            async with aiohttp.ClientSession() as session:
                async with session.post(self.url(server, "/api/signup"), json=SIGNUP) as resp:
                    token = (await resp.json())["token"]
                async with session.get(
                    self.url(server, "/protected"),
                    headers={"Authorization": f"Bearer {token}"},
                ) as resp:
                    with_token = resp.status
                async with session.get(self.url(server, "/protected")) as resp:
                    without_token = (resp.status, await resp.json())
            return with_token, without_token

        with_token, without_token = self.serve(scenario)
        self.assertEqual(with_token, 200)
        self.assertEqual(without_token, (401, {"message": "Unauthorized."}))

    def test_errors(self):
        """Test malformed JSON, duplicate signup and unknown route"""
        async def scenario(server):
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    self.url(server, "/api/signup"),
                    data=b"{nope",
                    headers={"Content-Type": "application/json"},
                ) as resp:
                    malformed = (resp.status, await resp.json())
                async with session.post(self.url(server, "/api/signup"), json=SIGNUP):
                    pass
                async with session.post(self.url(server, "/api/signup"), json=SIGNUP) as resp:
                    duplicate = (resp.status, await resp.json())
                async with session.get(self.url(server, "/missing")) as resp:
                    missing = resp.status
            return malformed, duplicate, missing

        malformed, duplicate, missing = self.serve(scenario)
        self.assertEqual(malformed, (400, {"message": "Invalid request body."}))
        self.assertEqual(duplicate, (400, {"message": "User already exists."}))
        self.assertEqual(missing, 404)

    def test_dropped_connection_stores_nothing(self):
        """Test a client vanishing mid-body gets no response and leaves no user"""
        raw = json.dumps(SIGNUP).encode()

        async def scenario(server):
            outcomes = []

            async def recording_handler(request):
                response = await server.pipeline.handle(request)
                outcomes.append(response)
                return response

            server.transport.set_request_handler(recording_handler)

            reader, writer = await asyncio.open_connection("127.0.0.1", server.port)
            writer.write(
                b"POST /api/signup HTTP/1.1\r\nHost: localhost\r\n"
                b"Content-Type: application/json\r\n"
                + f"Content-Length: {len(raw) + 50}\r\n\r\n".encode()
                + raw[:20]
            )
            await writer.drain()
            await asyncio.sleep(0.05)
            writer.close()
            await writer.wait_closed()

            for _ in range(100):
                if outcomes:
                    break
                await asyncio.sleep(0.02)
            return outcomes, len(server.store)

        outcomes, users = self.serve(scenario)
        self.assertEqual(outcomes, [None])
        self.assertEqual(users, 0)

    def test_unprotected(self):
        """Test unprotected endpoint"""
        async def scenario(server):
            async with aiohttp.ClientSession() as session:
                async with session.get(self.url(server, "/unprotected")) as resp:
                    return resp.status, await resp.json()

        self.assertEqual(
            self.serve(scenario), (200, {"message": "Hello from unprotected endpoint."})
        )


if __name__ == "__main__":
    unittest.main()
