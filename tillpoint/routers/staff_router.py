from fastapi import APIRouter, Depends

from tillpoint.db.session import Till, get_till
from tillpoint.schemas import PinCheckRequest
from tillpoint.services.staff import verify_pin

router = APIRouter()


@router.post("/{staff_id}/verify-pin")
def verify_staff_pin(staff_id: int, req: PinCheckRequest, till: Till = Depends(get_till)):
    return {"ok": verify_pin(till, staff_id, req.pin)}
