"""Tests for password hashing and the input policy."""

import pytest

from taskmaster.errors import PasswordHashingError
from taskmaster.services.passwords import PasswordHasher
from taskmaster.services.validation import normalize_email, validate_email, validate_name, validate_password


@pytest.fixture(name="hasher")
def hasher_fixture() -> PasswordHasher:
    return PasswordHasher(rounds=4)


class TestPasswordHasher:
    def test_hash_is_not_plaintext_and_verifies(self, hasher: PasswordHasher):
        password_hash = hasher.hash("Passw0rd!")
        assert password_hash != "Passw0rd!"
        assert hasher.verify("Passw0rd!", password_hash)
        assert not hasher.verify("passw0rd!", password_hash)

    def test_hashes_are_salted(self, hasher: PasswordHasher):
        assert hasher.hash("Passw0rd!") != hasher.hash("Passw0rd!")

    def test_cost_factor_encoded_in_hash(self, hasher: PasswordHasher):
        assert hasher.hash("Passw0rd!").startswith("$2b$04$")

    def test_default_rounds_from_settings(self):
        # conftest sets BCRYPT_ROUNDS=4 for speed
        assert PasswordHasher().rounds == 4

    def test_overlong_password_never_verifies(self, hasher: PasswordHasher):
        password_hash = hasher.hash("a1" * 36)
        assert not hasher.verify("a1" * 36 + "extra", password_hash)

    def test_invalid_cost_raises(self):
        with pytest.raises(PasswordHashingError):
            PasswordHasher(rounds=3).hash("Passw0rd!")

    def test_malformed_hash_raises(self, hasher: PasswordHasher):
        with pytest.raises(PasswordHashingError):
            hasher.verify("Passw0rd!", "not-a-bcrypt-hash")


class TestInputPolicy:
    def test_normalize_email(self):
        assert normalize_email("  Ann@X.Com ") == "ann@x.com"

    @pytest.mark.parametrize("email", ["ann@x.com", "first.last+tag@example.co.uk"])
    def test_valid_emails(self, email: str):
        assert validate_email(email) is None

    @pytest.mark.parametrize("email", ["", "   ", "ann", "ann@x", "a b@x.com"])
    def test_invalid_emails(self, email: str):
        assert validate_email(email) is not None

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("Ann", None),
            ("  Jo  ", None),
            ("", "Name is required"),
            ("A", "Name must be at least 2 characters"),
            ("x" * 51, "Name cannot exceed 50 characters"),
        ],
    )
    def test_names(self, name: str, expected):
        assert validate_name(name) == expected

    @pytest.mark.parametrize(
        "password, expected",
        [
            ("Passw0rd!", None),
            ("", "Password is required"),
            ("Pa55", "Password must be at least 8 characters long"),
            ("abcdefghij", "Password must contain at least one letter and one number"),
            ("1234567890", "Password must contain at least one letter and one number"),
            ("a1" * 37, "Password cannot exceed 72 bytes"),
        ],
    )
    def test_passwords(self, password: str, expected):
        assert validate_password(password, min_length=8) == expected
