from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from medapp.core.logging_config import setup_logging
from medapp.api.routes_chat import router as chat_router
from medapp.api.routes_discharge import router as discharge_router
from medapp.api.routes_medications import router as medications_router
from medapp.api.routes_patients import router as patients_router
from medapp.db.store import ConflictError, NotFoundError

setup_logging()

app = FastAPI(title="Discharge Medication Reminders", version="1.0")

app.include_router(patients_router)
app.include_router(medications_router)
app.include_router(discharge_router)
app.include_router(chat_router)

@app.exception_handler(NotFoundError)
def not_found(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})

@app.exception_handler(ConflictError)
def conflict(request: Request, exc: ConflictError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})

@app.get("/health")
def health():
    return {"ok": True}
@app.get("/")
def root():
    return {"ok": True, "service": "Discharge Medication Reminders"}
