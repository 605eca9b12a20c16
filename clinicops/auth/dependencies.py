import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import func
from sqlalchemy.orm import Session

from clinicops.auth import jwt_handler
from clinicops.models.staff import ClinicStaff
from clinicops.routes.deps import get_db

security = HTTPBearer()


def get_current_staff(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> ClinicStaff:
    token = credentials.credentials
    try:
        payload = jwt_handler.decode_access_token(token)
    except jwt.PyJWTError as exc:
        raise HTTPException(status_code=401, detail="Invalid token") from exc

    email = payload.get("sub")
    if not email:
        raise HTTPException(status_code=401, detail="Invalid token subject")

    query = db.query(ClinicStaff).filter(
        func.lower(ClinicStaff.email) == email.strip().lower(),
        ClinicStaff.is_active.is_(True),
    )
    if payload.get("clinic_id") is not None:
        query = query.filter(ClinicStaff.clinic_id == payload["clinic_id"])

    staff = query.order_by(ClinicStaff.id.asc()).first()
    if staff is None:
        raise HTTPException(status_code=401, detail="Staff member not found")
    return staff
