"""
API 共用 dependencies

身份驗證由外部負責，這裡只從 X-User-Id header 取得目前使用者，並直接信任它。
"""
from typing import Optional
from uuid import UUID

from fastapi import Header, HTTPException


def get_current_user_id(x_user_id: Optional[str] = Header(None)) -> UUID:
    """取得目前使用者的 UUID（header 缺少或格式錯誤時回 401）"""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    try:
        return UUID(x_user_id)
    except ValueError:
        raise HTTPException(status_code=401, detail="Unauthorized")
