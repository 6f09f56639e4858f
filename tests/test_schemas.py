"""
Request Schema Tests

Module: tests.test_schemas
"""

import unittest

from pydantic import ValidationError

from auth_server.protocol.schemas import (
    MAX_PASSWORD_BYTES,
    LoginRequest,
    SignupRequest,
    validate_shape,
)


class TestSchemas(unittest.TestCase):
    """Test suite for the auth request schemas"""

    def test_valid_payloads(self):
        """Test well-formed signup and login bodies"""
        self.assertTrue(validate_shape(
            {"email": "a@x.com", "password": "longenough1", "name": "A"}, SignupRequest
        ))
        self.assertTrue(validate_shape(
            {"email": "a@x.com", "password": "longenough1"}, LoginRequest
        ))

    def test_password_at_bcrypt_limit(self):
        """Test a password of exactly 72 bytes is accepted"""
        payload = {"email": "a@x.com", "password": "p" * MAX_PASSWORD_BYTES}
        self.assertTrue(validate_shape(payload, LoginRequest))

    def test_password_over_bcrypt_limit_explained(self):
        """Test the rejection names the byte limit and the truncation reason"""
        with self.assertRaises(ValidationError) as ctx:
            LoginRequest.model_validate({"email": "a@x.com", "password": "p" * 73})

        message = str(ctx.exception)
        self.assertIn("72 bytes", message)
        self.assertIn("bcrypt", message)

    def test_multibyte_password_counted_in_bytes(self):
        """Test the limit applies to UTF-8 bytes, not characters"""
        # 37 characters, 74 bytes
        payload = {"email": "a@x.com", "password": "é" * 37}
        self.assertFalse(validate_shape(payload, LoginRequest))

    def test_rejection_logged_with_reason(self):
        """Test the log line carries the failing field and its reason"""
        with self.assertLogs("protocol.schemas", level="INFO") as logs:
            validate_shape({"email": "a@x.com", "password": "p" * 80}, LoginRequest)

        self.assertIn("password", logs.output[0])
        self.assertIn("72 bytes", logs.output[0])
        self.assertNotIn("p" * 80, logs.output[0])


if __name__ == "__main__":
    unittest.main()
