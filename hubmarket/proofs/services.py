"""
Proof-of-performance service.

Publications upload evidence for offline placements; hub reviewers verify or
reject it. A proof can only be decided once, from ``pending``.
"""

from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from hubmarket.config import storage_config
from hubmarket.database import to_utc_naive, utcnow
from hubmarket.errors import InvalidTransitionError, NotFoundError, UpstreamError, ValidationError
from hubmarket.integrations.notifications import Notifier, safe_notify
from hubmarket.integrations.storage import BlobStore
from hubmarket.orders.models import InsertionOrder
from hubmarket.orders.services import InsertionOrderService
from hubmarket.utils.logging import setup_logger
from .models import ProofOfPerformance, VerificationStatus
from .schemas import OrderProofsResponse, ProofCreate, ProofOut, ProofSummary

logger = setup_logger(__name__)

class ProofService:
    """Service for proof uploads and their verification workflow."""

    def __init__(
        self,
        db: Session,
        orders: InsertionOrderService,
        blob_store: Optional[BlobStore] = None,
        notifier: Optional[Notifier] = None,
        clock: Callable[[], datetime] = utcnow
    ):
        self.db = db
        self.orders = orders
        self.blob_store = blob_store
        self.notifier = notifier
        self.clock = clock

    def _active(self):
        return self.db.query(ProofOfPerformance).filter(ProofOfPerformance.deleted_at.is_(None))

    def _load(self, proof_id: str, operation: str) -> ProofOfPerformance:
        proof = self._active().filter(ProofOfPerformance.id == proof_id).first()
        if proof is None:
            raise NotFoundError("Proof not found", operation, {"proofId": proof_id})
        return proof

    def _fresh_url(self, proof: ProofOfPerformance) -> str:
        """Regenerate a signed link; fall back to the stored URL when signing fails."""
        if self.blob_store is None or not proof.storage_key:
            return proof.file_url
        try:
            return self.blob_store.get_signed_url(proof.storage_key, storage_config.signed_url_ttl)
        except UpstreamError as e:
            logger.warning(f"Could not sign URL for proof {proof.id}: {e}")
            return proof.file_url

    def get(self, proof_id: str, user_id: str) -> ProofOut:
        proof = self._load(proof_id, "get_proof")
        self.orders.ensure_access(self.orders.get_order(proof.order_id), user_id, "get_proof")
        out = ProofOut.model_validate(proof)
        out.file_url = self._fresh_url(proof)
        return out

    def list_for_order(self, order_id: str, user_id: str) -> OrderProofsResponse:
        order = self.orders.get_order(order_id)
        self.orders.ensure_access(order, user_id, "list_proofs")
        proofs = (
            self._active()
            .filter(ProofOfPerformance.order_id == order.id)
            .order_by(ProofOfPerformance.uploaded_at.desc())
            .all()
        )
        summary = ProofSummary(total=len(proofs))
        outs = []
        for proof in proofs:
            summary.by_status[proof.verification_status] = summary.by_status.get(proof.verification_status, 0) + 1
            out = ProofOut.model_validate(proof)
            out.file_url = self._fresh_url(proof)
            outs.append(out)
        return OrderProofsResponse(proofs=outs, summary=summary)

    def verification_queue(self, user_id: str, hub_id: Optional[str] = None) -> List[ProofOfPerformance]:
        """Pending proofs on orders of the caller's hubs (every hub for admins)."""
        query = (
            self._active()
            .join(InsertionOrder, InsertionOrder.id == ProofOfPerformance.order_id)
            .filter(
                ProofOfPerformance.verification_status == VerificationStatus.PENDING.value,
                InsertionOrder.deleted_at.is_(None),
            )
        )
        permissions = self.orders.permissions
        if not permissions.is_admin(user_id):
            hubs = [str(h) for h in permissions.get_user_hubs(user_id)]
            query = query.filter(InsertionOrder.hub_id.in_(hubs))
        if hub_id:
            query = query.filter(InsertionOrder.hub_id == str(hub_id))
        return query.order_by(ProofOfPerformance.uploaded_at).all()

    def create(self, payload: ProofCreate, user_id: str) -> ProofOfPerformance:
        order = self.orders.get_order(payload.order_id)
        if order.campaign_id != payload.campaign_id or order.publication_id != str(payload.publication_id):
            raise ValidationError(
                "Order does not belong to this campaign and publication", "create_proof", {"orderId": order.id}
            )
        self.orders.ensure_access(order, user_id, "create_proof")

        data = payload.model_dump()
        data["file_type"] = payload.file_type.value
        data["run_date"] = to_utc_naive(payload.run_date)
        data["run_date_end"] = to_utc_naive(payload.run_date_end)
        data["publication_id"] = order.publication_id
        proof = ProofOfPerformance(
            **data,
            uploaded_by=user_id,
            uploaded_at=self.clock(),
            verification_status=VerificationStatus.PENDING.value,
        )
        self.db.add(proof)
        self.db.flush()

        safe_notify(self.notifier, "proof_uploaded", {
            "proofId": proof.id,
            "orderId": order.id,
            "hubId": order.hub_id,
            "fileName": proof.file_name,
        })
        logger.info(f"Proof {proof.id} uploaded for order {order.id}")
        return proof

    def verify(self, proof_id: str, status: VerificationStatus, user_id: str, notes: Optional[str] = None) -> ProofOfPerformance:
        """
        Record a reviewer decision.

        Raises:
            ValidationError: ``status`` is not a decision
            InvalidTransitionError: Proof was already decided
        """
        status = VerificationStatus(status)
        if status == VerificationStatus.PENDING:
            raise ValidationError("Status must be verified or rejected", "verify_proof")

        proof = self._load(proof_id, "verify_proof")
        order = self.orders.get_order(proof.order_id)
        self.orders.ensure_access(order, user_id, "verify_proof", hub_only=True)

        if proof.verification_status != VerificationStatus.PENDING.value:
            raise InvalidTransitionError(proof.verification_status, status.value, "verify_proof")

        proof.verification_status = status.value
        proof.verified_by = user_id
        proof.verified_at = self.clock()
        proof.verification_notes = notes
        self.db.flush()

        safe_notify(self.notifier, f"proof_{status.value}", {
            "proofId": proof.id,
            "orderId": order.id,
            "publicationId": order.publication_id,
            "notes": notes,
        })
        return proof

    def delete(self, proof_id: str, user_id: str) -> None:
        proof = self._load(proof_id, "delete_proof")
        self.orders.ensure_access(self.orders.get_order(proof.order_id), user_id, "delete_proof")
        proof.soft_delete()
        self.db.flush()
