"""Tests for credential lookup"""

from vauban_ai.credentials import (
    APICredential,
    CredentialManager,
    EncryptedFileBackend,
    EnvironmentBackend,
)


class TestAPICredential:
    def test_repr_masks_key(self):
        cred = APICredential(name="GEMINI_API_KEY", _key="AIza-super-secret-value")
        assert "super-secret" not in repr(cred)
        assert "super-secret" not in str(cred)
        assert cred.get_key() == "AIza-super-secret-value"


class TestEnvironmentBackend:
    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("GROQ_API_KEY", "gsk-test-123456")
        backend = EnvironmentBackend()
        assert backend.get("GROQ_API_KEY") == "gsk-test-123456"
        assert "GROQ_API_KEY" in backend.list_names()

    def test_missing_variable(self, monkeypatch):
        monkeypatch.delenv("GROQ_API_KEY", raising=False)
        assert EnvironmentBackend().get("GROQ_API_KEY") is None


class TestCredentialManager:
    def test_rotated_key_is_seen_without_restart(self, credentials, monkeypatch):
        """Lookups are not cached"""
        monkeypatch.setenv("GEMINI_API_KEY", "first-key-123456")
        assert credentials.get_api_key("GEMINI_API_KEY") == "first-key-123456"

        monkeypatch.setenv("GEMINI_API_KEY", "second-key-123456")
        assert credentials.get_api_key("GEMINI_API_KEY") == "second-key-123456"

        monkeypatch.delenv("GEMINI_API_KEY")
        assert credentials.get_api_key("GEMINI_API_KEY") is None

    def test_short_key_rejected(self, credentials):
        assert credentials.set_credential("GEMINI_API_KEY", "short") is False

    def test_earlier_backend_wins(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TOGETHER_API_KEY", "from-environment-123")
        encrypted = EncryptedFileBackend(tmp_path / "creds.enc")
        manager = CredentialManager(backends=[encrypted, EnvironmentBackend()])

        assert manager.get_api_key("TOGETHER_API_KEY") == "from-environment-123"

        assert manager.set_credential("TOGETHER_API_KEY", "from-encrypted-file-123")
        assert manager.get_api_key("TOGETHER_API_KEY") == "from-encrypted-file-123"

    def test_delete_removes_from_all_backends(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TOGETHER_API_KEY", "from-environment-123")
        encrypted = EncryptedFileBackend(tmp_path / "creds.enc")
        manager = CredentialManager(backends=[encrypted, EnvironmentBackend()])
        manager.set_credential("TOGETHER_API_KEY", "from-encrypted-file-123")

        assert manager.delete_credential("TOGETHER_API_KEY") is True
        assert manager.get_api_key("TOGETHER_API_KEY") is None


class TestEncryptedFileBackend:
    def test_round_trip_is_encrypted_on_disk(self, tmp_path):
        creds_file = tmp_path / "creds.enc"
        backend = EncryptedFileBackend(creds_file)

        assert backend.set("HUGGINGFACE_API_KEY", "hf_test_value_123456")
        assert backend.get("HUGGINGFACE_API_KEY") == "hf_test_value_123456"
        assert b"hf_test_value_123456" not in creds_file.read_bytes()

        # A fresh instance derives the same machine key
        assert EncryptedFileBackend(creds_file).get("HUGGINGFACE_API_KEY") == (
            "hf_test_value_123456"
        )

    def test_corrupt_file_reads_as_empty(self, tmp_path):
        creds_file = tmp_path / "creds.enc"
        creds_file.write_bytes(b"not a fernet token")
        backend = EncryptedFileBackend(creds_file)
        assert backend.get("HUGGINGFACE_API_KEY") is None
        assert backend.list_names() == []
