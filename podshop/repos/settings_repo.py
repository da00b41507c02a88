from sqlalchemy import select
from sqlalchemy.orm import Session

from podshop.data.models.setting import SettingModel


class SettingsRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_many(self, keys) -> list[SettingModel]:
        return list(
            self.db.execute(select(SettingModel).where(SettingModel.key.in_(list(keys)))).scalars().all()
        )

    def upsert(self, key: str, value: str, encrypted: bool):
        setting = self.db.get(SettingModel, key)
        if setting is None:
            setting = SettingModel(key=key)
            self.db.add(setting)
        setting.value = value
        setting.encrypted = encrypted

    def commit(self):
        self.db.commit()
