"""Unit tests for CredentialStore and token encryption."""
import pytest
from cryptography.fernet import Fernet

from sparkle.utils.credentials import CredentialStore
from sparkle.utils.encryption import InvalidToken, decrypt_token, encrypt_token


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


def make_store(clock, jar_path="", fernet_key=""):
    return CredentialStore(
        jar_path=jar_path,
        cookie_name="token",
        domain="localhost",
        ttl_days=1,
        fernet_key=fernet_key,
        clock=clock,
    )


class TestCredentialStore:
    """Tests for get / set / clear on the token cookie."""

    def test_set_get_clear(self, clock):
        store = make_store(clock)
        assert store.get() is None
        assert not store

        store.set("tok-1")
        assert store.get() == "tok-1"
        assert store

        store.clear()
        assert store.get() is None

    def test_clear_when_empty_is_noop(self, clock):
        store = make_store(clock)
        store.clear()
        assert store.get() is None

    def test_cookie_expires_after_one_day(self, clock):
        store = make_store(clock)
        store.set("tok-1")

        clock.now += 86_400 - 1
        assert store.get() == "tok-1"

        clock.now += 1
        assert store.get() is None

    def test_cookie_shape(self, clock):
        store = make_store(clock)
        store.set("tok-1")

        cookie = next(iter(store.cookies.jar))
        assert cookie.name == "token"
        assert cookie.path == "/"
        assert cookie.expires == int(clock.now) + 86_400

    def test_jar_persists_between_instances(self, clock, tmp_path):
        path = tmp_path / "nested" / "cookies.txt"
        make_store(clock, jar_path=str(path)).set("tok-disk")

        assert path.exists()
        assert path.stat().st_mode & 0o777 == 0o600
        assert make_store(clock, jar_path=str(path)).get() == "tok-disk"

    def test_corrupt_jar_means_no_session(self, clock, tmp_path):
        path = tmp_path / "cookies.txt"
        path.write_text("this is not a cookie jar\n")

        store = make_store(clock, jar_path=str(path))

        assert store.get() is None


class TestEncryptedStorage:
    """Tests for Fernet-encrypted token storage."""

    def test_roundtrip(self):
        key = Fernet.generate_key().decode()
        stored = encrypt_token("tok-secret", key)

        assert stored != "tok-secret"
        assert decrypt_token(stored, key) == "tok-secret"

    def test_wrong_key_rejected(self):
        stored = encrypt_token("tok-secret", Fernet.generate_key().decode())

        with pytest.raises(InvalidToken):
            decrypt_token(stored, Fernet.generate_key().decode())

    def test_store_encrypts_cookie_value(self, clock):
        key = Fernet.generate_key().decode()
        store = make_store(clock, fernet_key=key)

        store.set("tok-secret")

        cookie = next(iter(store.cookies.jar))
        assert cookie.value != "tok-secret"
        assert store.get() == "tok-secret"

    def test_undecryptable_cookie_is_dropped(self, clock, tmp_path):
        path = tmp_path / "cookies.txt"
        make_store(clock, jar_path=str(path), fernet_key=Fernet.generate_key().decode()).set("tok")

        rotated = make_store(clock, jar_path=str(path), fernet_key=Fernet.generate_key().decode())

        assert rotated.get() is None
        assert list(rotated.cookies.jar) == []
