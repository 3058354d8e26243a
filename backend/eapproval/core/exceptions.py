"""결재 서비스 에러 정의

서비스 레이어는 ValueError(에러 코드)를 던지고 API 레이어가 HTTP 응답으로
변환한다. 결재 에러는 모두 ValueError 하위 클래스이므로 str(e)가 에러 코드가
되어 handle_service_error 매핑을 그대로 사용할 수 있다.
"""


class ApprovalError(ValueError):
    """결재 서비스 에러 기본 클래스"""

    code = "APPROVAL_ERROR"

    def __init__(self, message: str | None = None, *, code: str | None = None):
        if code is not None:
            self.code = code
        self.message = message or self.code
        super().__init__(self.code)


class ValidationError(ApprovalError):
    """상신 입력값 오류 (호출자가 입력을 고쳐야 함)"""

    code = "VALIDATION_ERROR"


class NotFoundError(ApprovalError):
    """존재하지 않는 문서/알림"""

    code = "DOCUMENT_NOT_FOUND"


class AlreadyProcessedError(ApprovalError):
    """이미 처리된 문서 또는 동시 처리에서 밀린 요청"""

    code = "ALREADY_PROCESSED"


class NotAuthorizedError(ApprovalError):
    """현재 결재자가 아니거나 열람 권한 없음"""

    code = "NOT_CURRENT_APPROVER"


class InvalidStateError(ApprovalError):
    """문서의 current_approver_id와 결재선이 어긋난 상태"""

    code = "INVALID_STATE"


class StoreError(ApprovalError):
    """저장소 I/O 실패"""

    code = "STORE_ERROR"
