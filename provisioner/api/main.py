from fastapi import FastAPI
from provisioner.api.routes.applications import router as applications_router
from provisioner.api.routes.validation import router as validation_router

app = FastAPI(title="Provisioner API")

@app.get("/health")
def health():
    return {"status": "ok"}

app.include_router(validation_router)
app.include_router(applications_router)
