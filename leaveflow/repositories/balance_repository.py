import logging
from typing import Optional

from sqlalchemy.orm import Session

from leaveflow.core.exceptions import NotFoundError
from leaveflow.models.leave_balance import LeaveBalance
from leaveflow.models.leave_request import LeaveRequest

logger = logging.getLogger(__name__)


class LeaveBalanceRepository:
    """
    Minimal balance ledger: deducts days when a request is fully approved and
    gives them back when an approved request is deleted. Accrual is not
    handled here.
    """

    def __init__(self, session: Session):
        self.session = session

    def _balance_for(self, request: LeaveRequest) -> Optional[LeaveBalance]:
        query = self.session.query(LeaveBalance).filter(
            LeaveBalance.employee_id == request.employee_id,
            LeaveBalance.leave_type == request.leave_type,
        )
        if request.start_date is not None:
            query = query.filter(LeaveBalance.year == request.start_date.year)
        return query.first()

    def _request(self, request_id: int) -> LeaveRequest:
        request = self.session.get(LeaveRequest, request_id)
        if request is None:
            raise NotFoundError(f"Leave request {request_id} not found")
        return request

    def consume_leave_balance(self, request_id: int) -> None:
        request = self._request(request_id)
        balance = self._balance_for(request)
        if balance is None:
            logger.info(f"No {request.leave_type} balance tracked for user {request.employee_id}; nothing to deduct")
            return
        balance.used_days += request.days_count
        balance.remaining_days -= request.days_count

    def restore_leave_balance(self, request_id: int) -> None:
        request = self._request(request_id)
        balance = self._balance_for(request)
        if balance is None:
            logger.info(f"No {request.leave_type} balance tracked for user {request.employee_id}; nothing to restore")
            return
        balance.used_days = max(0.0, balance.used_days - request.days_count)
        balance.remaining_days += request.days_count
