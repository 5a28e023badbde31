"""Unit tests for studyshare.core.security: bcrypt hashing and JWT issue/verify."""

import unittest
from datetime import UTC, datetime, timedelta

import jwt

from studyshare.core.config import Settings, settings
from studyshare.core.errors import Unauthorized
from studyshare.core.security import (
    create_access_token,
    hash_password,
    verify_access_token,
    verify_password,
)


class TestPasswordHashing(unittest.TestCase):
    """Stored hashes never equal the plaintext and verify only the right password."""

    def test_hash_is_not_plaintext_and_is_salted(self) -> None:
        first = hash_password("secret1", rounds=4)
        second = hash_password("secret1", rounds=4)
        self.assertNotEqual(first, "secret1")
        self.assertNotIn("secret1", first)
        self.assertNotEqual(first, second)

    def test_default_cost_factor_is_10(self) -> None:
        hashed = hash_password("secret1")
        self.assertTrue(hashed.startswith("$2b$10$"))

    def test_verify_password(self) -> None:
        hashed = hash_password("secret1", rounds=4)
        self.assertTrue(verify_password("secret1", hashed))
        self.assertFalse(verify_password("secret2", hashed))

    def test_verify_against_malformed_hash_is_false(self) -> None:
        self.assertFalse(verify_password("secret1", "not-a-bcrypt-hash"))


class TestAccessToken(unittest.TestCase):
    """verify_access_token(create_access_token(id)) == id until expiry."""

    def test_round_trip_returns_user_id(self) -> None:
        token = create_access_token(42)
        self.assertEqual(verify_access_token(token), 42)

    def test_default_expiry_is_seven_days(self) -> None:
        token = create_access_token(7)
        payload = jwt.decode(
            token,
            settings.JWT_SECRET.get_secret_value(),
            algorithms=[settings.JWT_ALGORITHM],
        )
        self.assertEqual(payload["exp"] - payload["iat"], 7 * 24 * 60 * 60)

    def test_expired_token_is_rejected(self) -> None:
        token = create_access_token(42, expires_delta=timedelta(seconds=-1))
        with self.assertRaises(Unauthorized) as ctx:
            verify_access_token(token)
        self.assertEqual(ctx.exception.message, "Invalid token")

    def test_wrong_signature_is_rejected(self) -> None:
        token = jwt.encode(
            {"sub": "42", "exp": datetime.now(UTC) + timedelta(days=1)},
            "some-other-secret",
            algorithm="HS256",
        )
        with self.assertRaises(Unauthorized):
            verify_access_token(token)

    def test_non_integer_sub_is_rejected(self) -> None:
        token = jwt.encode(
            {"sub": "abc", "exp": datetime.now(UTC) + timedelta(days=1)},
            settings.JWT_SECRET.get_secret_value(),
            algorithm=settings.JWT_ALGORITHM,
        )
        with self.assertRaises(Unauthorized):
            verify_access_token(token)

    def test_garbage_token_is_rejected(self) -> None:
        with self.assertRaises(Unauthorized):
            verify_access_token("not.a.jwt")


class TestExplicitSettings(unittest.TestCase):
    """A Settings passed in wins over the process-wide one."""

    def setUp(self) -> None:
        self.custom = Settings(JWT_SECRET="custom-secret", BCRYPT_ROUNDS=4)

    def test_token_signed_with_given_secret(self) -> None:
        token = create_access_token(5, settings=self.custom)
        self.assertEqual(verify_access_token(token, settings=self.custom), 5)
        payload = jwt.decode(token, "custom-secret", algorithms=["HS256"])
        self.assertEqual(payload["sub"], "5")

    def test_token_from_other_secret_is_rejected(self) -> None:
        token = jwt.encode(
            {"sub": "5", "exp": datetime.now(UTC) + timedelta(days=1)},
            "not-the-custom-secret",
            algorithm="HS256",
        )
        with self.assertRaises(Unauthorized):
            verify_access_token(token, settings=self.custom)

    def test_hash_uses_given_rounds(self) -> None:
        self.assertTrue(hash_password("secret1", settings=self.custom).startswith("$2b$04$"))


if __name__ == "__main__":
    unittest.main()
