"""Catalog router: topics and membership plans (public, read-only)."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from minilove.core.database import get_db
from minilove.schemas import envelope
from minilove.services.posts.catalog import CatalogService

router = APIRouter(tags=["Catalog"])


def get_catalog_service(db: Session = Depends(get_db)) -> CatalogService:
    return CatalogService(db)


@router.get("/topics")
def list_topics(
    featured: bool = Query(False),
    service: CatalogService = Depends(get_catalog_service),
):
    return envelope({"topics": service.list_topics(featured_only=featured)})


@router.get("/membership/plans")
def list_membership_plans(service: CatalogService = Depends(get_catalog_service)):
    return envelope({"plans": service.list_plans()})
