"""Proof-of-performance routes."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from hubmarket.api.deps import get_current_user_id, get_proof_service
from .schemas import OrderProofsResponse, ProofCreate, ProofOut, ProofVerification
from .services import ProofService

proofs_router = APIRouter(prefix="/proof-of-performance", tags=["proofs"])

@proofs_router.get("/queue", response_model=List[ProofOut])
def verification_queue(
    hub_id: Optional[str] = Query(None, alias="hubId"),
    user_id: str = Depends(get_current_user_id),
    service: ProofService = Depends(get_proof_service),
):
    """Pending proofs awaiting a reviewer."""
    return [ProofOut.model_validate(proof) for proof in service.verification_queue(user_id, hub_id)]

@proofs_router.get("/order/{order_id}", response_model=OrderProofsResponse)
def list_order_proofs(
    order_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ProofService = Depends(get_proof_service),
):
    return service.list_for_order(order_id, user_id)

@proofs_router.get("/{proof_id}", response_model=ProofOut)
def get_proof(
    proof_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ProofService = Depends(get_proof_service),
):
    """Proof with a freshly signed file URL."""
    return service.get(proof_id, user_id)

@proofs_router.post("", response_model=ProofOut, status_code=201)
def create_proof(
    body: ProofCreate,
    user_id: str = Depends(get_current_user_id),
    service: ProofService = Depends(get_proof_service),
):
    return ProofOut.model_validate(service.create(body, user_id))

@proofs_router.put("/{proof_id}/verify", response_model=ProofOut)
def verify_proof(
    proof_id: str,
    body: ProofVerification,
    user_id: str = Depends(get_current_user_id),
    service: ProofService = Depends(get_proof_service),
):
    return ProofOut.model_validate(service.verify(proof_id, body.status, user_id, body.notes))

@proofs_router.delete("/{proof_id}")
def delete_proof(
    proof_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ProofService = Depends(get_proof_service),
):
    service.delete(proof_id, user_id)
    return {"success": True}
