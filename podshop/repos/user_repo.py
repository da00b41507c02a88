from sqlalchemy import select, func
from sqlalchemy.orm import Session
from podshop.data.models.user import UserModel

class UserRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_user(self, user_id: int) -> UserModel | None:
        return self.db.get(UserModel, user_id)

    def get_by_email(self, email: str) -> UserModel | None:
        return self.db.execute(
            select(UserModel).where(UserModel.email == email)
        ).scalar_one_or_none()

    def count_by_role(self, role: str) -> int:
        return self.db.execute(
            select(func.count(UserModel.id)).where(UserModel.role == role)
        ).scalar_one()

    def create_user(self, user: UserModel) -> UserModel:
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user
