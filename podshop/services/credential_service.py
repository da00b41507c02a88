# podshop/services/credential_service.py
from sqlalchemy.orm import Session

from podshop.repos.settings_repo import SettingsRepo
from podshop.utils.crypto import SettingsCipher
from podshop.utils.settings import PROVIDER_ENV_CREDENTIALS, PROVIDER_SETTING_KEYS


class CredentialService:
    """Klucze API providerow: szyfrowane w bazie, odszyfrowane dopiero przy odczycie."""

    def __init__(self, db: Session, cipher: SettingsCipher, env_defaults: dict | None = None):
        self.repo = SettingsRepo(db)
        self.cipher = cipher
        self.env_defaults = PROVIDER_ENV_CREDENTIALS if env_defaults is None else env_defaults

    def _stored(self) -> dict[str, str]:
        values = {}
        for setting in self.repo.get_many(PROVIDER_SETTING_KEYS):
            values[setting.key] = self.cipher.decrypt(setting.value) if setting.encrypted else setting.value
        return values

    def list_settings(self) -> list[dict]:
        stored = self._stored()
        return [
            {"key": key, "value": stored[key], "hasValue": bool(stored[key])}
            for key in PROVIDER_SETTING_KEYS
            if key in stored
        ]

    def update_settings(self, values: dict[str, str | None]) -> list[str]:
        updated = []
        for key, value in values.items():
            if key not in PROVIDER_SETTING_KEYS or not value:
                continue
            self.repo.upsert(key, self.cipher.encrypt(value), encrypted=True)
            updated.append(key)
        self.repo.commit()
        return updated

    def provider_credentials(self) -> dict[str, str | None]:
        # wartosc z bazy wygrywa z env
        credentials = {key: self.env_defaults.get(key) for key in PROVIDER_SETTING_KEYS}
        credentials.update({k: v for k, v in self._stored().items() if v})
        return credentials
