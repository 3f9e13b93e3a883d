"""Top-level API router aggregation."""

from fastapi import APIRouter

from smartledger.api.routes.categories import router as categories_router
from smartledger.api.routes.clients import router as clients_router
from smartledger.api.routes.expenses import router as expenses_router
from smartledger.api.routes.exports import router as exports_router
from smartledger.api.routes.incomes import router as incomes_router
from smartledger.api.routes.insights import router as insights_router
from smartledger.api.routes.invoices import router as invoices_router
from smartledger.api.routes.projects import router as projects_router
from smartledger.api.routes.recurring_invoices import router as recurring_invoices_router
from smartledger.api.routes.reports import router as reports_router
from smartledger.api.routes.subscription import router as subscription_router
from smartledger.api.routes.team import router as team_router
from smartledger.api.routes.vendors import router as vendors_router

api_router = APIRouter()
api_router.include_router(clients_router)
api_router.include_router(categories_router)
api_router.include_router(vendors_router)
api_router.include_router(incomes_router)
api_router.include_router(expenses_router)
api_router.include_router(recurring_invoices_router)
api_router.include_router(projects_router)
api_router.include_router(invoices_router)
api_router.include_router(reports_router)
api_router.include_router(exports_router)
api_router.include_router(insights_router)
api_router.include_router(subscription_router)
api_router.include_router(team_router)
