from verifiedid.lib.fastapi import app
from verifiedid.routes.issuer import router as issuer_router
from verifiedid.routes.verifier import router as verifier_router
from verifiedid.routes.status import router as status_router
from verifiedid.routes.mock import router as mock_router

app.include_router(issuer_router)
app.include_router(verifier_router)
app.include_router(status_router)
app.include_router(mock_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8080)
