# podshop/api/routers/auth.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from podshop.api.deps import get_current_user, get_db
from podshop.api.responses import dump, ok
from podshop.domain.schemas import LoginIn, RegisterIn, UserOut
from podshop.services.user_service import UserService

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", status_code=201)
def register(payload: RegisterIn, db: Session = Depends(get_db)):
    user, token = UserService(db).register(payload)
    return ok({"user": dump(UserOut, user), "token": token})


@router.post("/login")
def login(payload: LoginIn, db: Session = Depends(get_db)):
    user, token = UserService(db).login(payload)
    return ok({"user": dump(UserOut, user), "token": token})


@router.get("/me")
def me(user: dict = Depends(get_current_user), db: Session = Depends(get_db)):
    return ok({"user": dump(UserOut, UserService(db).get_user(user["userId"]))})
