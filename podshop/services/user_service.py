from sqlalchemy.orm import Session

from podshop.data.models.user import UserModel
from podshop.domain.schemas import RegisterIn, LoginIn
from podshop.repos.user_repo import UserRepo
from podshop.utils.errors import AuthError, ConflictError, NotFoundError
from podshop.utils.logging import get_logger
from podshop.utils.security import create_access_token, hash_password, verify_password

logger = get_logger(__name__)


class UserService:
    def __init__(self, db: Session):
        self.repo = UserRepo(db)

    def _token(self, user: UserModel) -> str:
        return create_access_token(user.id, user.email, user.role)

    def register(self, payload: RegisterIn) -> tuple[UserModel, str]:
        email = payload.email.lower()
        if self.repo.get_by_email(email):
            raise ConflictError("User already exists")

        user = self.repo.create_user(
            UserModel(email=email, name=payload.name, password_hash=hash_password(payload.password))
        )
        logger.info(f"Registered user {user.id}")
        return user, self._token(user)

    def login(self, payload: LoginIn) -> tuple[UserModel, str]:
        user = self.repo.get_by_email(payload.email.lower())
        if not user or not verify_password(payload.password, user.password_hash):
            raise AuthError("Invalid credentials")
        return user, self._token(user)

    def get_user(self, user_id: int) -> UserModel:
        user = self.repo.get_user(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user
