"""
Credential Store for Vauban AI
==============================
Resolves vendor API keys by the variable name each provider declares
in the registry (e.g. ``GEMINI_API_KEY``). Backends are tried in order:
1. System keyring (most secure - uses OS credential store)
2. Encrypted file with machine-specific key
3. Environment variables (fallback)

Keys are looked up on every call and never cached, so an operator can
rotate a key without restarting the process.
"""

import base64
import getpass
import hashlib
import json
import logging
import os
import subprocess
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path

import keyring
from keyring.errors import KeyringError, PasswordDeleteError
from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

logger = logging.getLogger(__name__)

SERVICE_NAME = "vauban_ai"
CONFIG_DIR = Path.home() / ".vauban_ai"
ENCRYPTED_CREDS_FILE = CONFIG_DIR / "credentials.enc"

MIN_KEY_LENGTH = 10


@dataclass(frozen=True)
class APICredential:
    """Immutable credential container that never prints its secret"""

    name: str
    _key: str = field(repr=False)

    def get_key(self) -> str:
        logger.debug(f"API key accessed: {self.name}")
        return self._key

    def __repr__(self) -> str:
        return f"APICredential(name={self.name}, key=****)"

    def __str__(self) -> str:
        return self.__repr__()


class CredentialBackend(ABC):
    """Abstract base class for credential storage backends"""

    @abstractmethod
    def get(self, name: str) -> str | None:
        """Retrieve the secret stored under ``name``"""

    @abstractmethod
    def set(self, name: str, api_key: str) -> bool:
        """Store a secret under ``name``"""

    @abstractmethod
    def delete(self, name: str) -> bool:
        """Remove the secret stored under ``name``"""

    @abstractmethod
    def list_names(self) -> list[str]:
        """List all stored credential names"""

    @property
    @abstractmethod
    def is_available(self) -> bool:
        """Check if this backend is usable on the system"""


class KeyringBackend(CredentialBackend):
    """Uses OS keychain/keyring for secure storage"""

    @property
    def is_available(self) -> bool:
        try:
            keyring.get_password(SERVICE_NAME, "__probe__")
            return True
        except (KeyringError, RuntimeError):
            return False

    def get(self, name: str) -> str | None:
        try:
            return keyring.get_password(SERVICE_NAME, name)
        except KeyringError as e:
            logger.warning(f"Keyring get failed for {name}: {e}")
            return None

    def set(self, name: str, api_key: str) -> bool:
        try:
            keyring.set_password(SERVICE_NAME, name, api_key)
            logger.info(f"Stored credential in keyring: {name}")
            return True
        except KeyringError as e:
            logger.error(f"Keyring set failed for {name}: {e}")
            return False

    def delete(self, name: str) -> bool:
        try:
            keyring.delete_password(SERVICE_NAME, name)
            return True
        except PasswordDeleteError:
            return True
        except KeyringError as e:
            logger.warning(f"Keyring delete failed for {name}: {e}")
            return False

    def list_names(self) -> list[str]:
        # Keyring has no listing API
        return []


class EncryptedFileBackend(CredentialBackend):
    """Encrypted file storage using machine-specific key derivation"""

    def __init__(self, creds_file: Path = ENCRYPTED_CREDS_FILE):
        self.creds_file = creds_file
        self._fernet: Fernet | None = None
        self._init_encryption()

    @property
    def is_available(self) -> bool:
        return self._fernet is not None

    def _get_machine_id(self) -> bytes:
        """Generate machine-specific identifier for key derivation"""
        identifiers = []

        if sys.platform == "darwin":
            try:
                result = subprocess.run(  # noqa: S603
                    ["ioreg", "-rd1", "-c", "IOPlatformExpertDevice"],  # noqa: S607
                    capture_output=True,
                    text=True,
                )
                for line in result.stdout.split("\n"):
                    if "IOPlatformUUID" in line:
                        identifiers.append(line.split('"')[-2])
                        break
            except OSError:
                pass
        elif sys.platform == "linux":
            try:
                with open("/etc/machine-id") as f:
                    identifiers.append(f.read().strip())
            except OSError:
                pass

        identifiers.extend(
            [
                getpass.getuser(),
                os.uname().nodename if hasattr(os, "uname") else "unknown",
            ]
        )

        combined = ":".join(identifiers)
        return hashlib.sha256(combined.encode()).digest()

    def _init_encryption(self) -> None:
        try:
            kdf = PBKDF2HMAC(
                algorithm=hashes.SHA256(),
                length=32,
                salt=b"vauban_ai_v1",
                iterations=480000,
            )
            key = base64.urlsafe_b64encode(kdf.derive(self._get_machine_id()))
            self._fernet = Fernet(key)
            self.creds_file.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to initialize encryption: {e}")
            self._fernet = None

    def _load_credentials(self) -> dict[str, str]:
        if self._fernet is None or not self.creds_file.exists():
            return {}

        try:
            decrypted = self._fernet.decrypt(self.creds_file.read_bytes())
            loaded = json.loads(decrypted.decode())
        except (OSError, InvalidToken, ValueError) as e:
            logger.error(f"Failed to load credentials: {e}")
            return {}

        return loaded if isinstance(loaded, dict) else {}

    def _save_credentials(self, creds: dict[str, str]) -> bool:
        if self._fernet is None:
            return False

        try:
            encrypted = self._fernet.encrypt(json.dumps(creds).encode())
            # Write atomically with restricted permissions
            temp_file = self.creds_file.with_suffix(".tmp")
            temp_file.write_bytes(encrypted)
            os.chmod(temp_file, 0o600)
            temp_file.replace(self.creds_file)
            return True
        except OSError as e:
            logger.error(f"Failed to save credentials: {e}")
            return False

    def get(self, name: str) -> str | None:
        return self._load_credentials().get(name)

    def set(self, name: str, api_key: str) -> bool:
        creds = self._load_credentials()
        creds[name] = api_key
        success = self._save_credentials(creds)
        if success:
            logger.info(f"Stored credential in encrypted file: {name}")
        return success

    def delete(self, name: str) -> bool:
        creds = self._load_credentials()
        if name in creds:
            del creds[name]
            return self._save_credentials(creds)
        return True

    def list_names(self) -> list[str]:
        return list(self._load_credentials().keys())


class EnvironmentBackend(CredentialBackend):
    """Environment variable lookup (least secure, but always available)"""

    @property
    def is_available(self) -> bool:
        return True

    def get(self, name: str) -> str | None:
        return os.environ.get(name)

    def set(self, name: str, api_key: str) -> bool:
        os.environ[name] = api_key
        logger.warning(f"Set API key in environment (non-persistent): {name}")
        return True

    def delete(self, name: str) -> bool:
        os.environ.pop(name, None)
        return True

    def list_names(self) -> list[str]:
        return [name for name, value in os.environ.items() if name.endswith("_API_KEY") and value]


class CredentialManager:
    """
    Credential lookup with a fallback chain of backends:
    1. System keyring
    2. Encrypted file
    3. Environment variables
    """

    def __init__(self, backends: list[CredentialBackend] | None = None):
        if backends is None:
            backends = [KeyringBackend(), EncryptedFileBackend(), EnvironmentBackend()]
        self._backends = backends
        self._log_security_posture()

    def _log_security_posture(self) -> None:
        available = [type(b).__name__ for b in self._backends if b.is_available]
        logger.debug(f"Available credential backends: {available}")

        if not any(
            not isinstance(b, EnvironmentBackend) and b.is_available
            for b in self._backends
        ):
            logger.debug("No secure credential storage available, using environment only")

    def get_credential(self, name: str) -> APICredential | None:
        """Retrieve a credential, checking backends in priority order."""
        for backend in self._backends:
            if not backend.is_available:
                continue

            api_key = backend.get(name)
            if api_key:
                logger.debug(f"Retrieved credential {name} from {type(backend).__name__}")
                return APICredential(name=name, _key=api_key)

        return None

    def get_api_key(self, name: str) -> str | None:
        cred = self.get_credential(name)
        return cred.get_key() if cred else None

    def set_credential(self, name: str, api_key: str) -> bool:
        """Store a credential in the most secure available backend."""
        if not api_key or len(api_key) < MIN_KEY_LENGTH:
            logger.error("Invalid API key: too short")
            return False

        for backend in self._backends:
            if isinstance(backend, EnvironmentBackend) or not backend.is_available:
                continue
            if backend.set(name, api_key):
                return True

        for backend in self._backends:
            if isinstance(backend, EnvironmentBackend):
                return backend.set(name, api_key)
        return False

    def delete_credential(self, name: str) -> bool:
        """Remove a credential from all backends"""
        success = True
        for backend in self._backends:
            if backend.is_available:
                success = backend.delete(name) and success
        return success

    def list_configured(self) -> list[str]:
        names: set[str] = set()
        for backend in self._backends:
            if backend.is_available:
                names.update(backend.list_names())
        return sorted(names)


_manager: CredentialManager | None = None


def get_credential_manager() -> CredentialManager:
    """Get the process-wide credential manager"""
    global _manager
    if _manager is None:
        _manager = CredentialManager()
    return _manager


def get_api_key(name: str) -> str | None:
    return get_credential_manager().get_api_key(name)


def set_api_key(name: str, api_key: str) -> bool:
    return get_credential_manager().set_credential(name, api_key)
