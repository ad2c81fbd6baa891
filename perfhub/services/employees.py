import logging
from typing import Any, Dict, List, Optional

from perfhub.core.exceptions import NotFoundError
from perfhub.services.base import BaseService
from perfhub.services.identity import IdentityProvider
from perfhub.services.scoring import round_half_up
from perfhub.store import collections

logger = logging.getLogger(__name__)

# Fields an employee may change on their own profile
SELF_EDITABLE_FIELDS = ("name", "phone", "location", "bio", "photoURL")


class EmployeeService(BaseService):

    def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.records.create(collections.EMPLOYEES, data)

    def get(self, employee_id: str) -> Optional[Dict[str, Any]]:
        return self.records.get_by_id(collections.EMPLOYEES, employee_id)

    def require(self, employee_id: str) -> Dict[str, Any]:
        employee = self.get(employee_id)
        if employee is None:
            raise NotFoundError("Employee", employee_id)
        return employee

    def get_by_user_id(self, user_id: str) -> Optional[Dict[str, Any]]:
        return self.queries.find_one(collections.EMPLOYEES, "userId", user_id)

    def list_all(self) -> List[Dict[str, Any]]:
        return self.records.list_all(collections.EMPLOYEES)

    def update(self, employee_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        employee = self.require(employee_id)
        written = self.records.update(collections.EMPLOYEES, employee_id, changes)
        employee.update(written)
        return employee

    def delete(self, employee_id: str) -> None:
        # Goals, feedback and metrics that point at the employee are left in place
        self.records.delete(collections.EMPLOYEES, employee_id)
        logger.info(f"Deleted employee {employee_id}")

    def onboard(
        self,
        identity: IdentityProvider,
        name: str,
        email: str,
        password: str,
        position: Optional[str] = None,
        department: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Register a login for a new employee and create their profile and
        employee record.

        Runs under the authority-transition lock for the new email, so the
        profile-sync listener does not race us with a default profile.
        """
        with identity.transition_lock.hold(email):
            new_identity = identity.register(email, password, display_name=name)
            self.records.create(
                collections.USERS,
                {
                    "uid": new_identity.uid,
                    "email": new_identity.email,
                    "displayName": name,
                    "role": "employee",
                    "active": True,
                },
                key=new_identity.uid,
            )
            employee = self.create({
                "name": name,
                "email": new_identity.email,
                "position": position,
                "department": department,
                "performanceScore": 0,
                "userId": new_identity.uid,
            })
        logger.info(f"Onboarded employee {employee['id']} for user {new_identity.uid}")
        return employee

    def summary(self) -> Dict[str, Any]:
        employees = self.list_all()
        total = len(employees)
        average = round_half_up(sum(e.get("performanceScore") or 0 for e in employees) / total) if total else 0
        return {
            "employeeCount": total,
            "averageScore": average,
            "ratedCount": sum(1 for e in employees if e.get("performanceScore") is not None),
        }
