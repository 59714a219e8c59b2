"""FastAPI application exposing the restaurant back-office API."""

import logging
from typing import Dict

from fastapi import FastAPI, HTTPException

from backoffice.config.supabase_client import SUPABASE_ANON_KEY, SUPABASE_URL
from backoffice.api.routes.alerts import router as alerts_router
from backoffice.api.routes.auth import router as auth_router
from backoffice.api.routes.consumption import router as consumption_router
from backoffice.api.routes.dashboard import router as dashboard_router
from backoffice.api.routes.financial import router as financial_router
from backoffice.api.routes.ingredients import router as ingredients_router
from backoffice.api.routes.preferences import router as preferences_router
from backoffice.api.routes.recipes import router as recipes_router
from backoffice.api.routes.reports import router as reports_router
from backoffice.api.routes.restaurants import router as restaurants_router
from backoffice.api.routes.shopping_lists import router as shopping_lists_router
from backoffice.api.routes.suppliers import router as suppliers_router

app = FastAPI(title="Restaurant Back-office")
logger = logging.getLogger(__name__)

# Include Routers
app.include_router(auth_router)
app.include_router(restaurants_router)
app.include_router(preferences_router)
app.include_router(ingredients_router)
app.include_router(alerts_router)
app.include_router(recipes_router)
app.include_router(shopping_lists_router)
app.include_router(suppliers_router)
app.include_router(financial_router)
app.include_router(consumption_router)
app.include_router(reports_router)
app.include_router(dashboard_router)


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/api/config")
def supabase_config() -> Dict[str, str]:
    if not SUPABASE_URL or not SUPABASE_ANON_KEY:
        logger.error("SUPABASE_URL or SUPABASE_ANON_KEY is not set")
        raise HTTPException(status_code=500, detail="Configuração do Supabase ausente.")
    return {"supabaseUrl": SUPABASE_URL, "supabaseAnonKey": SUPABASE_ANON_KEY}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("backoffice.main:app", host="127.0.0.1", port=8000, reload=True)
