from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
from portal.app.routers import auth as auth_router
from portal.app.routers import boards as boards_router
from portal.app.routers import events as events_router
from portal.app.routers import ocr as ocr_router
from portal.app.routers import profiles as profiles_router
from portal.app.routers import registrations as registrations_router
from portal.app.routers import status as status_router
from portal.app.routers import tasks as tasks_router
from portal.app.config import settings as C
from portal.app.errors import PortalError, to_http

log = logging.getLogger(__name__)

app = FastAPI(title="eventdesk-portal")

app.add_middleware(
    CORSMiddleware,
    allow_origins=C.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include all routers
app.include_router(status_router.router)
app.include_router(ocr_router.router)
app.include_router(auth_router.router)
app.include_router(profiles_router.router)
app.include_router(events_router.router)
app.include_router(registrations_router.router)
app.include_router(tasks_router.router)
app.include_router(boards_router.router)


@app.exception_handler(PortalError)
async def _portal_error(request: Request, exc: PortalError):
    http = to_http(exc)
    log.info(f"[portal] {request.method} {request.url.path} -> {http.status_code}: {exc.message}")
    return JSONResponse(status_code=http.status_code, content={"detail": http.detail})


@app.on_event("startup")
async def _startup_log():
    logging.info(
        f"[portal] QDRANT_URL={C.QDRANT_URL}  OLLAMA_URL={C.OLLAMA_URL}  "
        f"OCR_DEV_MODE={C.OCR_DEV_MODE}  IDENTITY_DEV_MODE={C.IDENTITY_DEV_MODE}"
    )
    logging.info(
        "[portal] Routes: /health /status /ocr /auth /profile /staff /leaderboard "
        "/events /registrations /my-registrations /tasks /notifications"
    )


@app.get("/")
async def root():
    return {"message": "eventdesk portal service"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=C.PORT)
