"""Main FastAPI application entry point."""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from compliance_engine import settings
from compliance_engine.database import engine, Base
from compliance_engine.logging import configure_logging
from compliance_engine.api.routes import router
# Import models to register them with SQLAlchemy Base
from compliance_engine.models.domain import (  # noqa: F401
    ComplianceOverride,
    Employee,
    EmployeeCertification,
    OrganisationRequirement,
    UserProfile,
)
from compliance_engine.models.audit import AuditLog  # noqa: F401

configure_logging(settings.LOG_LEVEL)

# Create database tables
Base.metadata.create_all(bind=engine)

# Create FastAPI app
app = FastAPI(
    title="Compliance Engine",
    description="Decides whether a worker may be assigned, based on mandatory certifications and time-limited overrides.",
    version="0.1.0"
)

# Enable CORS for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # For MVP - restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(router, prefix="/api", tags=["Compliance"])


# Health check
@app.get("/health")
def health_check():
    return {"status": "healthy", "service": "Compliance Engine"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
