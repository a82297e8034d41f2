from fastapi import FastAPI

from tmdash.routers import accounts, cards, events, health, imports, jobs, purchases
from tmdash.models import account as account_models  # noqa: F401 - ensures models are registered
from tmdash.models import card as card_models  # noqa: F401
from tmdash.models import event as event_models  # noqa: F401
from tmdash.models import purchase as purchase_models  # noqa: F401
from tmdash.models import setting as setting_models  # noqa: F401
from tmdash.models import job as job_models  # noqa: F401

app = FastAPI(title="Ticket Dashboard", version="1.0.0")

app.include_router(imports.router, prefix="/import", tags=["import"])
app.include_router(accounts.router, prefix="/accounts", tags=["accounts"])
app.include_router(events.router, prefix="/events", tags=["events"])
app.include_router(cards.router, prefix="/cards", tags=["cards"])
app.include_router(purchases.router, prefix="/purchases", tags=["purchases"])
app.include_router(jobs.router, prefix="/jobs", tags=["jobs"])
app.include_router(health.router, tags=["health"])
