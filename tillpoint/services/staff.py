from tillpoint.db.models import Staff
from tillpoint.db.session import Till
from tillpoint.errors import StaffNotFound


def verify_pin(till: Till, staff_id: int, pin: str) -> bool:
    """Staff members without a PIN are always let through."""
    with till.transaction() as db:
        staff = db.get(Staff, staff_id)
        if staff is None:
            raise StaffNotFound(staff_id)
        return staff.pin is None or staff.pin == pin
