from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from eapproval.core.config import get_settings

settings = get_settings()


def create_access_token(subject: str) -> str:
    """Access token 생성

    토큰 발급은 인트라넷 인증 서버의 책임이며, 이 함수는 개발/테스트용이다.
    """
    expire = datetime.now(timezone.utc) + timedelta(
        minutes=settings.access_token_expire_minutes
    )
    to_encode = {"sub": subject, "exp": expire, "type": "access"}
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict | None:
    """토큰 디코딩 (검증 포함)"""
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
        return payload
    except JWTError:
        return None
