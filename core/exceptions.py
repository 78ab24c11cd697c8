"""
自定義異常類別

集中管理所有業務邏輯異常，方便 API 層統一處理
"""


class MealRotationException(Exception):
    """所有輪值異常的基類"""
    pass


# ============ 輸入驗證異常 ============

class ValidationError(MealRotationException):
    """輸入格式錯誤（在任何寫入之前就拒絕）"""
    pass


class InvalidDiceValue(ValidationError):
    """骰子點數必須介於 1 到 10"""
    pass


# ============ 權限異常 ============

class Forbidden(MealRotationException):
    """操作者不是輪值的擁有者"""
    pass


class NotTeamMember(Forbidden):
    """操作者不是團隊成員"""
    def __init__(self, team_id, user_id):
        self.team_id = team_id
        self.user_id = user_id
        super().__init__(f"User {user_id} is not a member of team {team_id}")


# ============ 查無資料異常 ============

class NotFound(MealRotationException):
    """引用的資料不存在"""
    pass


class TeamNotFound(NotFound):
    def __init__(self, team_id):
        self.team_id = team_id
        super().__init__(f"Team {team_id} not found")


class CycleNotFound(NotFound):
    def __init__(self, cycle_id):
        self.cycle_id = cycle_id
        super().__init__(f"Cycle {cycle_id} not found")


class TurnNotFound(NotFound):
    def __init__(self, turn_id):
        self.turn_id = turn_id
        super().__init__(f"Meal turn {turn_id} not found")


# ============ Cycle 相關異常 ============

class CycleConflict(MealRotationException):
    """同一團隊同時建立了兩個 active cycle（被 unique index 擋下）"""
    pass


class InvalidStateTransition(MealRotationException):
    """非法的狀態轉換（例如結束一個已經結束的 cycle）"""
    pass


# ============ Roll 相關異常 ============

class DuplicateRoll(MealRotationException):
    """成員在這個 cycle 已經擲過骰子了"""
    pass


class RotationInProgress(MealRotationException):
    """順序已經排好，這個 cycle 不再接受擲骰"""
    pass


class TurnsAlreadyCreated(MealRotationException):
    """這個 cycle 已經產生過 MealTurn"""
    pass


# ============ Turn / Driver 相關異常 ============

class AlreadyCompleted(MealRotationException):
    """這個輪值已經完成過了"""
    pass


class NoDriversAvailable(MealRotationException):
    """團隊裡沒有任何有車的成員"""
    pass


class InvalidDrivers(MealRotationException):
    """呼叫端指定的司機名單不合法"""
    pass
