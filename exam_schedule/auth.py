"""
API key authentication for the exam schedule service.
시험 일정 서비스의 API 키 인증 모듈입니다.

Valid keys come from Settings.API_KEYS (comma-separated) held on app.state.
If no keys are configured, authentication is DISABLED (development mode).

Usage:
    @app.get("/api/endpoint")
    async def endpoint(api_key: str | None = Depends(require_api_key)):
        ...
"""

from fastapi import HTTPException, Request, Security, status
from fastapi.security import APIKeyHeader, APIKeyQuery

# FastAPI security schemes: header first, then query param
_api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)
_api_key_query = APIKeyQuery(name="api_key", auto_error=False)


async def require_api_key(
    request: Request,
    header_key: str | None = Security(_api_key_header),
    query_key: str | None = Security(_api_key_query),
) -> str | None:
    """FastAPI dependency that enforces API key authentication.

    Returns the authenticated API key (or None in open-access mode).
    Raises HTTP 401 if a key is required and missing or invalid.
    """
    valid_keys = request.app.state.settings.api_keys

    # API_KEYS 미설정 시 인증 비활성화 (개발 모드)
    if not valid_keys:
        return None

    provided_key = header_key or query_key
    if not provided_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing API key. Provide via X-API-Key header or api_key query parameter.",
            headers={"WWW-Authenticate": "ApiKey"},
        )
    if provided_key not in valid_keys:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key.",
            headers={"WWW-Authenticate": "ApiKey"},
        )
    return provided_key
