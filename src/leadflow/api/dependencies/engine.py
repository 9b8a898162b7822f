"""Engine entry point protection."""

import secrets
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from src.leadflow.core.config import Settings, get_settings

SettingsDep = Annotated[Settings, Depends(get_settings)]


async def require_engine_key(
    settings: SettingsDep,
    x_engine_key: Annotated[str | None, Header()] = None,
) -> None:
    """Check X-Engine-Key when an engine key is configured."""
    if settings.engine_api_key is None:
        return
    if x_engine_key is None or not secrets.compare_digest(x_engine_key, settings.engine_api_key):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing engine key",
        )


EngineKey = Depends(require_engine_key)
