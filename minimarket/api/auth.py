"""
Authentication API - Login, JWT Token, Users
"""
from fastapi import APIRouter, Depends, Response
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from sqlalchemy.orm import Session
from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime, timedelta, timezone
from uuid import UUID
from jose import JWTError, jwt
import bcrypt
import logging

from minimarket.core import get_db, settings
from minimarket.core.exceptions import EntityNotFound, Unauthorized, ValidationError
from minimarket.models import AppUser

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

# ============== Configuration ==============

ALGORITHM = "HS256"

# OAuth2 scheme
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


# ============== Schemas ==============

class Token(BaseModel):
    access_token: str
    token_type: str
    user: dict


class UserCreate(BaseModel):
    email: str
    full_name: str
    password: str
    role: str = "cashier"


class UserUpdate(BaseModel):
    email: Optional[str] = None
    full_name: Optional[str] = None
    password: Optional[str] = None
    role: Optional[str] = None


class UserInfo(BaseModel):
    id: UUID
    email: str
    full_name: str
    role: str
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ============== Helper Functions ==============

def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash using bcrypt"""
    try:
        return bcrypt.checkpw(
            plain_password.encode('utf-8'),
            hashed_password.encode('utf-8')
        )
    except ValueError:
        # Malformed hash
        return False


def get_password_hash(password: str) -> str:
    """Hash a password using bcrypt"""
    return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token"""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=ALGORITHM)


def create_user(db: Session, email: str, full_name: str, password: str, role: str = "cashier") -> AppUser:
    email = (email or "").strip().lower()
    if not email:
        raise ValidationError("email is required", field="email")
    if not password:
        raise ValidationError("password is required", field="password")
    if db.query(AppUser).filter(AppUser.email == email).first():
        raise ValidationError(f"User {email} already exists", field="email")

    user = AppUser(
        email=email,
        full_name=full_name,
        role=role,
        hashed_password=get_password_hash(password),
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"User created: {email} ({role})")
    return user


def update_user(db: Session, user_id: UUID, data: UserUpdate) -> AppUser:
    """Update email, name, role or password. A blank password keeps the current one."""
    user = db.get(AppUser, user_id)
    if user is None:
        raise EntityNotFound("User", user_id)

    if data.email is not None:
        email = data.email.strip().lower()
        if not email:
            raise ValidationError("email is required", field="email")
        if email != user.email:
            if db.query(AppUser).filter(AppUser.email == email).first():
                raise ValidationError(f"User {email} already exists", field="email")
            user.email = email
    if data.full_name:
        user.full_name = data.full_name
    if data.role:
        user.role = data.role
    if data.password:
        user.hashed_password = get_password_hash(data.password)

    db.commit()
    db.refresh(user)
    logger.info(f"User updated: {user.email}")
    return user


def deactivate_user(db: Session, user_id: UUID) -> AppUser:
    """Soft delete: users stay referenced by movements and sales"""
    user = db.get(AppUser, user_id)
    if user is None:
        raise EntityNotFound("User", user_id)
    user.is_active = False
    db.commit()
    logger.info(f"User deactivated: {user.email}")
    return user


def authenticate_user(db: Session, email: str, password: str) -> Optional[AppUser]:
    """Authenticate user by email and password"""
    user = db.query(AppUser).filter(AppUser.email == (email or "").strip().lower()).first()
    if not user or not user.hashed_password:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> Optional[AppUser]:
    """Get current user from JWT token (None when no valid token is sent)"""
    if not token:
        return None

    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
        user_id = payload.get("sub")
        if user_id is None:
            return None
        return db.get(AppUser, UUID(user_id))
    except (JWTError, ValueError):
        return None


async def get_current_active_user(
    current_user: Optional[AppUser] = Depends(get_current_user)
) -> AppUser:
    """Require authenticated and active user"""
    if not current_user:
        raise Unauthorized("Not authenticated")
    if not current_user.is_active:
        raise Unauthorized("User is inactive")
    return current_user


def require_admin(current_user: AppUser = Depends(get_current_active_user)) -> AppUser:
    if current_user.role != "admin":
        raise Unauthorized("Only admins can manage users")
    return current_user


def resolve_actor_id(current_user: Optional[AppUser], body_user_id: Optional[UUID]) -> Optional[UUID]:
    """Acting user: the token's user, falling back to an explicit user_id in the body"""
    if current_user is not None:
        return current_user.id
    return body_user_id


# ============== API Endpoints ==============

@router.post("/login", response_model=Token)
async def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db)
):
    """
    Login with email and password, returns JWT token
    """
    user = authenticate_user(db, form_data.username, form_data.password)
    if not user:
        logger.warning(f"Failed login for {form_data.username}")
        raise Unauthorized("Invalid email or password")
    if not user.is_active:
        raise Unauthorized("User is inactive")

    access_token = create_access_token(data={"sub": str(user.id), "role": user.role})

    return {
        "access_token": access_token,
        "token_type": "bearer",
        "user": {
            "id": str(user.id),
            "email": user.email,
            "full_name": user.full_name,
            "role": user.role,
        }
    }


@router.get("/me", response_model=UserInfo)
async def get_me(current_user: AppUser = Depends(get_current_active_user)):
    """Get current authenticated user info"""
    return current_user


@router.get("/users", response_model=List[UserInfo])
async def list_users(
    admin: AppUser = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """List users, newest first (admin only)"""
    return db.query(AppUser).order_by(AppUser.created_at.desc()).all()


@router.post("/users", response_model=UserInfo)
async def register_user(
    data: UserCreate,
    admin: AppUser = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Create a user (admin only)"""
    return create_user(db, data.email, data.full_name, data.password, data.role)


@router.put("/users/{user_id}", response_model=UserInfo)
async def edit_user(
    user_id: UUID,
    data: UserUpdate,
    admin: AppUser = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Update a user (admin only)"""
    return update_user(db, user_id, data)


@router.delete("/users/{user_id}", status_code=204)
async def delete_user(
    user_id: UUID,
    admin: AppUser = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Deactivate a user (admin only)"""
    deactivate_user(db, user_id)
    return Response(status_code=204)
