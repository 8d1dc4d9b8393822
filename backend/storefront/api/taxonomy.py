from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Response, status

from storefront.api.deps import get_current_admin, taxonomy_service_dependency
from storefront.core.config import get_settings
from storefront.models.taxonomy_node import TaxonomyNodeBase
from storefront.schemas.taxonomy import (
    BreadcrumbItem,
    BreadcrumbResponse,
    CategoryCreateRequest,
    CategoryListResponse,
    CategoryOption,
    CategoryOptionsResponse,
    CategoryReorderRequest,
    CategoryResponse,
    CategorySeoResponse,
    CategorySortOrderRequest,
    CategoryTreeItem,
    CategoryTreeResponse,
    CategoryUpdateRequest,
    DescendantsResponse,
    ReorderResponse,
)
from storefront.services.revalidation import revalidate_taxonomy
from storefront.services.taxonomy import TaxonomyKind, TaxonomyService, TreeNode

settings = get_settings()


def _to_category_response(node: TaxonomyNodeBase) -> CategoryResponse:
    return CategoryResponse(
        id=str(node.id),
        name=node.name,
        slug=node.slug,
        description=node.description or "",
        parent_id=str(node.parent_id) if node.parent_id else None,
        image=node.image,
        sort_order=node.sort_order,
        is_active=bool(node.is_active),
        seo=CategorySeoResponse(
            title=node.seo_title or "",
            description=node.seo_description or "",
            og_image=node.seo_og_image,
            noindex=bool(node.seo_noindex),
        ),
        created_at=node.created_at,
        updated_at=node.updated_at,
    )


def _to_tree_item(node: TreeNode) -> CategoryTreeItem:
    return CategoryTreeItem(
        id=str(node.id),
        name=node.name,
        slug=node.slug,
        description=node.description,
        parent_id=str(node.parent_id) if node.parent_id else None,
        image=node.image,
        sort_order=node.sort_order,
        is_active=node.is_active,
        depth=node.depth,
        path=node.path,
        children=[_to_tree_item(child) for child in node.children],
    )


def _parse_uuid(value: str, *, field_name: str) -> UUID:
    try:
        return UUID(value)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Invalid {field_name}",
        ) from exc


def build_taxonomy_router(kind: TaxonomyKind) -> APIRouter:
    """Public reads and admin writes for one taxonomy kind."""
    router = APIRouter(prefix=kind.route_prefix, tags=[f"{kind.key}-categories"])
    get_service = taxonomy_service_dependency(kind)

    @router.get("", response_model=CategoryListResponse)
    async def list_categories(
        page: int = Query(default=1, ge=1),
        limit: int = Query(default=settings.default_page_size, ge=1, le=settings.max_page_size),
        parent: str | None = Query(default=None),
        is_active: bool | None = Query(default=None),
        search: str | None = Query(default=None, max_length=100),
        service: TaxonomyService = Depends(get_service),
    ) -> CategoryListResponse:
        roots_only = parent == "null"
        parent_id = None
        if parent and not roots_only:
            parent_id = _parse_uuid(parent, field_name="parent")

        result = await service.list_nodes(
            page=page,
            limit=limit,
            parent_id=parent_id,
            roots_only=roots_only,
            is_active=is_active,
            search=search,
        )
        return CategoryListResponse(
            items=[_to_category_response(node) for node in result.items],
            total=result.total,
            page=result.page,
            limit=result.limit,
            total_pages=result.total_pages,
        )

    @router.get("/tree", response_model=CategoryTreeResponse)
    async def get_category_tree(
        active_only: bool = Query(default=True),
        service: TaxonomyService = Depends(get_service),
    ) -> CategoryTreeResponse:
        tree = await service.get_tree(active_only=active_only)
        return CategoryTreeResponse(categories=[_to_tree_item(node) for node in tree])

    @router.get("/options", response_model=CategoryOptionsResponse)
    async def get_category_options(
        active_only: bool = Query(default=False),
        service: TaxonomyService = Depends(get_service),
    ) -> CategoryOptionsResponse:
        options = await service.get_select_options(active_only=active_only)
        return CategoryOptionsResponse(options=[CategoryOption(**option) for option in options])

    @router.get("/active", response_model=list[CategoryResponse])
    async def list_active_categories(
        service: TaxonomyService = Depends(get_service),
    ) -> list[CategoryResponse]:
        return [_to_category_response(node) for node in await service.get_active()]

    @router.get("/search", response_model=list[CategoryResponse])
    async def search_categories(
        q: str = Query(min_length=1, max_length=100),
        limit: int = Query(default=10, ge=1, le=50),
        service: TaxonomyService = Depends(get_service),
    ) -> list[CategoryResponse]:
        return [_to_category_response(node) for node in await service.search(q, limit)]

    @router.get("/slug/{slug}", response_model=CategoryResponse)
    async def get_category_by_slug(
        slug: str,
        service: TaxonomyService = Depends(get_service),
    ) -> CategoryResponse:
        return _to_category_response(await service.get_by_slug(slug))

    @router.post("", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
    async def create_category(
        payload: CategoryCreateRequest,
        background_tasks: BackgroundTasks,
        _: str = Depends(get_current_admin),
        service: TaxonomyService = Depends(get_service),
    ) -> CategoryResponse:
        node = await service.create(payload)
        background_tasks.add_task(revalidate_taxonomy, kind, [node.slug])
        return _to_category_response(node)

    @router.post("/reorder", response_model=ReorderResponse)
    async def reorder_categories(
        payload: CategoryReorderRequest,
        background_tasks: BackgroundTasks,
        _: str = Depends(get_current_admin),
        service: TaxonomyService = Depends(get_service),
    ) -> ReorderResponse:
        updated = await service.bulk_update_order(
            [(item.id, item.sort_order) for item in payload.items]
        )
        background_tasks.add_task(revalidate_taxonomy, kind, [])
        return ReorderResponse(updated=updated)

    @router.get("/{category_id}", response_model=CategoryResponse)
    async def get_category(
        category_id: str,
        service: TaxonomyService = Depends(get_service),
    ) -> CategoryResponse:
        node_id = _parse_uuid(category_id, field_name="category_id")
        return _to_category_response(await service.get_by_id(node_id))

    @router.get("/{category_id}/breadcrumb", response_model=BreadcrumbResponse)
    async def get_category_breadcrumb(
        category_id: str,
        service: TaxonomyService = Depends(get_service),
    ) -> BreadcrumbResponse:
        node_id = _parse_uuid(category_id, field_name="category_id")
        crumbs = await service.get_breadcrumb(node_id)
        return BreadcrumbResponse(
            items=[
                BreadcrumbItem(id=str(crumb["id"]), name=crumb["name"], slug=crumb["slug"])
                for crumb in crumbs
            ],
            depth=await service.get_depth(node_id),
        )

    @router.get("/{category_id}/descendants", response_model=DescendantsResponse)
    async def get_category_descendants(
        category_id: str,
        service: TaxonomyService = Depends(get_service),
    ) -> DescendantsResponse:
        node_id = _parse_uuid(category_id, field_name="category_id")
        descendant_ids = await service.get_descendant_ids(node_id)
        return DescendantsResponse(ids=[str(descendant_id) for descendant_id in descendant_ids])

    @router.get("/{category_id}/children", response_model=list[CategoryResponse])
    async def get_category_children(
        category_id: str,
        service: TaxonomyService = Depends(get_service),
    ) -> list[CategoryResponse]:
        node_id = _parse_uuid(category_id, field_name="category_id")
        return [_to_category_response(node) for node in await service.get_children(node_id)]

    @router.patch("/{category_id}", response_model=CategoryResponse)
    async def update_category(
        category_id: str,
        payload: CategoryUpdateRequest,
        background_tasks: BackgroundTasks,
        _: str = Depends(get_current_admin),
        service: TaxonomyService = Depends(get_service),
    ) -> CategoryResponse:
        node_id = _parse_uuid(category_id, field_name="category_id")
        previous_slug = (await service.get_by_id(node_id)).slug
        node = await service.update(node_id, payload)
        background_tasks.add_task(revalidate_taxonomy, kind, [node.slug, previous_slug])
        return _to_category_response(node)

    @router.patch("/{category_id}/order", response_model=CategoryResponse)
    async def update_category_order(
        category_id: str,
        payload: CategorySortOrderRequest,
        background_tasks: BackgroundTasks,
        _: str = Depends(get_current_admin),
        service: TaxonomyService = Depends(get_service),
    ) -> CategoryResponse:
        node_id = _parse_uuid(category_id, field_name="category_id")
        node = await service.update_order(node_id, payload.sort_order)
        background_tasks.add_task(revalidate_taxonomy, kind, [node.slug])
        return _to_category_response(node)

    @router.post("/{category_id}/toggle-active", response_model=CategoryResponse)
    async def toggle_category_active(
        category_id: str,
        background_tasks: BackgroundTasks,
        _: str = Depends(get_current_admin),
        service: TaxonomyService = Depends(get_service),
    ) -> CategoryResponse:
        node_id = _parse_uuid(category_id, field_name="category_id")
        node = await service.toggle_active(node_id)
        background_tasks.add_task(revalidate_taxonomy, kind, [node.slug])
        return _to_category_response(node)

    @router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_category(
        category_id: str,
        background_tasks: BackgroundTasks,
        reparent_children: bool = Query(default=False),
        _: str = Depends(get_current_admin),
        service: TaxonomyService = Depends(get_service),
    ) -> Response:
        node_id = _parse_uuid(category_id, field_name="category_id")
        node = await service.delete(node_id, reparent_children=reparent_children)
        background_tasks.add_task(revalidate_taxonomy, kind, [node.slug])
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return router
