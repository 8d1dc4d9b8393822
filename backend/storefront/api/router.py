from fastapi import APIRouter

from storefront.api.taxonomy import build_taxonomy_router
from storefront.services.taxonomy import TAXONOMY_KINDS

api_router = APIRouter()
for kind in TAXONOMY_KINDS.values():
    api_router.include_router(build_taxonomy_router(kind))
