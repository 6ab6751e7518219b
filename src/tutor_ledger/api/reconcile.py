'''
API endpoint for stateless snapshot reconciliation.
'''
from typing import Annotated, Any
from fastapi import APIRouter, Depends

from ..models import finance as finance_models
from ..services.ledger_service import LedgerService

class ReconcileAPI:
    """
    A class to encapsulate the stateless reconciliation endpoint.
    """
    def __init__(self):
        self.router = APIRouter(
            prefix="/reconcile",
            tags=["Reconciliation"]
        )
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        self.router.add_api_route(
                "",
                self.reconcile,
                methods=["POST"],
                response_model=finance_models.ReconcileResponse)

    async def reconcile(
        self,
        snapshot: finance_models.ReconcileRequest,
        ledger_service: Annotated[LedgerService, Depends(LedgerService)]
    ) -> Any:
        """
        Generates lessons from the subjects' schedules, merges them with the
        existing lessons, and reconciles them against the prepayments.
        Invalid input is rejected with 422 before anything runs.
        """
        return ledger_service.reconcile_request(snapshot)

# Instantiate the class and export its router
reconcile_api = ReconcileAPI()
router = reconcile_api.router
