from typing import Optional

from sqlmodel import Session

from ..models import ApiLog


def log_api_request(
    session: Session,
    endpoint: str,
    method: str,
    user_id: Optional[int],
    status_code: int,
    response_time_ms: int,
    user_agent: Optional[str],
    ip_address: Optional[str],
) -> None:
    session.add(
        ApiLog(
            endpoint=endpoint,
            method=method,
            user_id=user_id,
            status_code=status_code,
            response_time=response_time_ms,
            user_agent=user_agent,
            ip_address=ip_address,
        )
    )
    session.commit()
