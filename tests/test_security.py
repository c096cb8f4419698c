"""
SGI Compliance Tracker - Security Utility Tests
"""

from app.utils.security import get_password_hash, verify_password


class TestPasswordHashing:

    def test_hash_round_trip(self):
        hashed = get_password_hash("secreto1")
        assert hashed != "secreto1"
        assert verify_password("secreto1", hashed)
        assert not verify_password("otro", hashed)

    def test_missing_hash_never_verifies(self):
        assert verify_password("secreto1", None) is False
        assert verify_password("secreto1", "") is False
