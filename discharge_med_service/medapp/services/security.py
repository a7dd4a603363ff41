import os
from fastapi import Depends, Header, HTTPException
from medapp.core.env import load_env
from medapp.schemas.models import Actor
load_env()

def verify_internal_service(x_internal_key: str = Header(...)):
    secret = os.getenv("INTERNAL_SERVICE_SECRET")

    if not secret:
        raise HTTPException(
            status_code=500,
            detail="Internal service secret not configured."
        )

    if x_internal_key != secret:
        raise HTTPException(
            status_code=401,
            detail="Unauthorized service call."
        )

def get_actor(
    x_actor_id: str = Header(...),
    x_actor_role: str = Header(...),
    _ = Depends(verify_internal_service),
) -> Actor:
    role = x_actor_role.strip().upper()
    if role not in ("DOCTOR", "PATIENT"):
        raise HTTPException(status_code=400, detail=f"Unknown actor role '{x_actor_role}'")
    return Actor(id=x_actor_id, role=role)

def require_doctor(actor: Actor = Depends(get_actor)) -> Actor:
    if actor.role != "DOCTOR":
        raise HTTPException(status_code=403, detail="Only doctors can perform this action")
    return actor
