from pennytrail.core.database import Base, engine
from fastapi import FastAPI
from pennytrail.routes.emails import email_router
from pennytrail.routes.health import health_router
from pennytrail.routes.transactions import transaction_router


app = FastAPI(title="PennyTrail API", version="1.0.0")

Base.metadata.create_all(bind=engine)

# Include all routers
app.include_router(health_router)
app.include_router(email_router)
app.include_router(transaction_router)


@app.get("/")
def root():
    return {"message": "PennyTrail API is running"}
