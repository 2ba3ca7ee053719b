import logging

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..databases.database import get_db
from ..models.user import Role, User
from ..schemas.user import LoginResponse, RegisterResponse, UserLogin, UserOut, UserRegister
from ..utils.dependencies import get_token_service
from ..utils.errors import DuplicateEmail, InternalFailure, InvalidCredentials
from ..utils.security import TokenService, hash_password, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
def register(
        payload: UserRegister,
        request: Request,
        db: Session = Depends(get_db)
):
    try:
        if db.query(User).filter(User.email == payload.email).first():
            raise DuplicateEmail()

        user = User(
            email=payload.email,
            password=hash_password(payload.password, request.app.state.settings.bcrypt_rounds),
            name=payload.name,
            role=payload.role or Role.REGULAR.value,
        )
        db.add(user)
        db.commit()
    except IntegrityError:
        # lost a race with a concurrent registration of the same email
        db.rollback()
        raise DuplicateEmail()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Registration failed")
        raise InternalFailure("Registration failed", str(exc))

    db.refresh(user)
    logger.info("Registered user %s (%s)", user.id, user.role)
    return RegisterResponse(message="User registered successfully", user=UserOut.model_validate(user))


@router.post("/login", response_model=LoginResponse)
def login(
        payload: UserLogin,
        db: Session = Depends(get_db),
        tokens: TokenService = Depends(get_token_service)
):
    try:
        user = db.query(User).filter(User.email == payload.email).first()
    except SQLAlchemyError as exc:
        logger.exception("Login failed")
        raise InternalFailure("Login failed", str(exc))

    # Same answer for unknown email and wrong password
    if user is None or not verify_password(payload.password, user.password):
        logger.warning("Failed login attempt")
        raise InvalidCredentials()

    token = tokens.issue(user.id, user.role)
    return LoginResponse(message="Login successful", token=token, user=UserOut.model_validate(user))
