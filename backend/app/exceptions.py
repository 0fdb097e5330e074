"""
서비스 계층 예외
- ServiceError: 비즈니스 규칙 위반 (HTTP 400)
- NotFoundError: 참조 대상 없음 (HTTP 404)
main.py의 exception handler가 {success: false, error} 형태로 변환한다.
"""


class ServiceError(Exception):
    """사람이 읽을 수 있는 메시지를 가진 서비스 예외"""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(ServiceError):
    status_code = 404
