"""
團隊目錄服務：唯讀查詢團隊與成員

團隊與成員資料由外部管理（建立團隊、加入團隊不在這個服務的範圍），
輪值核心只讀取：容量設定、成員名單、誰有車。
"""
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from database import settings
from models import Team, TeamMember, User
from core.exceptions import TeamNotFound, NotTeamMember


def get_team(team_id: UUID, db: Session) -> Team:
    """
    取得團隊

    異常：
        TeamNotFound: 團隊不存在
    """
    team = db.query(Team).filter(Team.id == team_id).first()
    if not team:
        raise TeamNotFound(team_id)
    return team


def get_member_count(team_id: UUID, db: Session) -> int:
    return db.query(TeamMember).filter(TeamMember.team_id == team_id).count()


def get_car_owner_ids(team_id: UUID, db: Session) -> List[UUID]:
    """
    取得有車成員的 user_id

    用途：
        DriverService 只會從這份名單中挑司機，has_car=False 的成員永遠不會被選到
    """
    rows = db.query(TeamMember.user_id).filter(
        TeamMember.team_id == team_id,
        TeamMember.has_car == True
    ).order_by(TeamMember.joined_at, TeamMember.id).all()
    return [user_id for (user_id,) in rows]


def is_member(team_id: UUID, user_id: UUID, db: Session) -> bool:
    return db.query(TeamMember.id).filter(
        TeamMember.team_id == team_id,
        TeamMember.user_id == user_id
    ).first() is not None


def require_member(team_id: UUID, user_id: UUID, db: Session) -> None:
    """
    確認使用者是團隊成員

    異常：
        NotTeamMember: 不是成員
    """
    if not is_member(team_id, user_id, db):
        raise NotTeamMember(team_id, user_id)


def get_vehicle_capacity(team: Team) -> int:
    """團隊每次聚餐需要的司機數，未設定時使用 settings 的預設值"""
    if team.vehicle_capacity and team.vehicle_capacity > 0:
        return team.vehicle_capacity
    return settings.default_vehicle_capacity


def get_display_name(user: Optional[User]) -> str:
    """
    顯示名稱：full_name > email > "Unknown"

    只用於畫面顯示，查不到資料時不拋異常
    """
    if user is None:
        return "Unknown"
    return user.full_name or user.email or "Unknown"
