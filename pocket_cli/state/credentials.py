"""Persistence of the consumer key and the access credential."""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from ..api.models import AccessCredential
from ..config import AUTH_FILE, CONSUMER_KEY_FILE, DEVELOPER_APPS_URL
from ..errors import ConfigError, NotAuthenticated, NotConfigured

logger = logging.getLogger(__name__)


class CredentialStore:
    """Loads and saves credentials under a per-user configuration directory."""

    def __init__(self, config_dir: Union[str, Path]):
        """Initialize the credential store.

        Args:
            config_dir: Directory holding ``consumer_key`` and ``auth.json``
        """
        self.config_dir = Path(config_dir)
        self.consumer_key_file = self.config_dir / CONSUMER_KEY_FILE
        self.auth_file = self.config_dir / AUTH_FILE

    def _ensure_config_dir(self) -> None:
        try:
            self.config_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigError(f"Cannot create {self.config_dir}: {e}") from e

    def load_consumer_key(self, prompt: bool = False) -> str:
        """Return the application's consumer key.

        ``POCKET_CONSUMER_KEY`` takes precedence over the key file. Only the
        first line of the key file is used.

        Args:
            prompt: Ask on stdin and persist the answer when no key is stored

        Raises:
            NotConfigured: If no key is stored and none was entered.
        """
        env_key = os.getenv("POCKET_CONSUMER_KEY", "").strip()
        if env_key:
            return env_key

        try:
            content = self.consumer_key_file.read_text(encoding="utf-8")
            key = content.split("\n", 1)[0].strip()
            if key:
                return key
            error = "key file is empty"
        except (OSError, UnicodeDecodeError) as e:
            error = str(e)

        logger.info("Can't get consumer key: %s", error)
        if not prompt:
            raise NotConfigured(
                f"No consumer key found in {self.consumer_key_file}"
            )

        answer = input(
            f"🔑 Enter your consumer key (from here {DEVELOPER_APPS_URL}): "
        )
        key = answer.split("\n", 1)[0].strip()
        if not key:
            raise NotConfigured("No consumer key entered")

        self._ensure_config_dir()
        self._write_private(self.consumer_key_file, key + "\n")
        return key

    def load_access_credential(self) -> AccessCredential:
        """Load the persisted access credential.

        Raises:
            NotAuthenticated: If the file is missing or not a valid credential.
        """
        try:
            with open(self.auth_file, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise NotAuthenticated(f"No saved authorization in {self.auth_file}") from e
        except (OSError, ValueError) as e:
            raise NotAuthenticated(f"Unreadable authorization file: {e}") from e

        if not isinstance(data, dict) or not data.get("access_token"):
            raise NotAuthenticated(f"{self.auth_file} does not hold an access token")

        return AccessCredential.from_dict(data)

    def save_access_credential(self, credential: AccessCredential) -> None:
        """Persist the access credential, replacing any previous one.

        Raises:
            ConfigError: If the file cannot be written.
        """
        self._ensure_config_dir()
        self._write_private(self.auth_file, json.dumps(credential.to_dict()) + "\n")
        logger.debug("Saved access credential to %s", self.auth_file)

    def clear_access_credential(self) -> bool:
        """Forget the persisted access credential.

        Returns:
            True if a credential file was removed, False if there was none
        """
        try:
            self.auth_file.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise ConfigError(f"Cannot remove {self.auth_file}: {e}") from e
        return True

    def _write_private(self, path: Path, content: str) -> None:
        """Write ``content`` to ``path`` with mode 0600.

        The data goes to a temporary sibling first and is moved into place
        with ``os.replace``, so readers never see a partial file.
        """
        tmp_path: Optional[str] = None
        try:
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{path.name}.", suffix=".tmp", dir=self.config_dir
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_path, 0o600)
            os.replace(tmp_path, path)
            tmp_path = None
        except OSError as e:
            raise ConfigError(f"Cannot write {path}: {e}") from e
        finally:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)
