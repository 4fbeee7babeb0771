"""
Orphaned variant maintenance.

GET  /api/variants/orphans — variants created but never attached to a cart
POST /api/variants/cleanup — delete them from the catalog
"""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..provisioning import VariantProvisioningService
from ..schemas import CleanupResult, OrphanedVariant
from ..shopify import ShopifyGraphQLClient, get_admin_client

router = APIRouter(prefix="/variants", tags=["variants"])


def get_provisioning(
    db: Session = Depends(get_db),
    admin: ShopifyGraphQLClient = Depends(get_admin_client),
) -> VariantProvisioningService:
    return VariantProvisioningService(admin, db=db)


@router.get("/orphans", response_model=List[OrphanedVariant])
def list_orphans(provisioning: VariantProvisioningService = Depends(get_provisioning)):
    return provisioning.list_orphans()


@router.post("/cleanup", response_model=CleanupResult)
def cleanup_orphans(provisioning: VariantProvisioningService = Depends(get_provisioning)):
    return provisioning.cleanup_orphans()
