from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager, nullcontext
from typing import Any
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.config import get_settings
from storefront.core.exceptions import (
    ConflictError,
    DatabaseError,
    NotFoundError,
    ServiceError,
    StructuralConflictError,
    ValidationError,
)
from storefront.models.taxonomy_node import TaxonomyNodeBase
from storefront.schemas.taxonomy import (
    CategoryCreateRequest,
    CategorySeo,
    CategoryUpdateRequest,
)
from storefront.services.taxonomy.content_references import (
    ContentReferences,
    LinkTableContentReferences,
)
from storefront.services.taxonomy.cycle_guard import (
    get_ancestor_ids,
    get_breadcrumb,
    get_depth,
    get_descendant_ids,
    validate_no_parent_cycle,
)
from storefront.services.taxonomy.kinds import TaxonomyKind
from storefront.services.taxonomy.locking import structural_lock
from storefront.services.taxonomy.slugs import (
    generate_slug,
    generate_unique_slug,
    is_valid_slug,
    normalize_slug,
)
from storefront.services.taxonomy.store import NodePage, NodeStore
from storefront.services.taxonomy.tree import TreeNode, build_tree, format_tree_for_select

logger = logging.getLogger(__name__)

DELETE_WITH_CHILDREN_MESSAGE = (
    "Cannot delete category with children. Delete children first or use reparent option."
)

# Nullable columns where an explicit null in a patch means "clear it".
NULLABLE_PATCH_FIELDS = frozenset({"parent_id", "image"})


def clean_category_name(name: str) -> str:
    return " ".join(str(name or "").strip().split())


def _seo_columns(seo: CategorySeo | dict[str, Any] | None) -> dict[str, Any]:
    if seo is None:
        return {}
    if isinstance(seo, CategorySeo):
        seo = seo.model_dump(exclude_unset=True)
    columns: dict[str, Any] = {}
    if seo.get("title") is not None:
        columns["seo_title"] = seo["title"]
    if seo.get("description") is not None:
        columns["seo_description"] = seo["description"]
    if "og_image" in seo:
        columns["seo_og_image"] = seo["og_image"]
    if seo.get("noindex") is not None:
        columns["seo_noindex"] = seo["noindex"]
    return columns


class TaxonomyService:
    """Create, move, reorder and delete the nodes of one taxonomy kind.

    This is the only writer of a kind's table. Every mutating call runs in its
    own transaction and commits before returning. Calls that can change a
    parent link hold the kind's structural lock from their first read until
    the commit, so the cycle check and the write see the same tree.
    """

    def __init__(
        self,
        session: AsyncSession,
        kind: TaxonomyKind,
        content_references: ContentReferences | None = None,
        *,
        slug_max_attempts: int | None = None,
    ) -> None:
        self.session = session
        self.kind = kind
        self.store: NodeStore[TaxonomyNodeBase] = NodeStore(session, kind.node_model)
        self.content_references = content_references or LinkTableContentReferences(
            session, kind.link_model
        )
        self.slug_max_attempts = slug_max_attempts or get_settings().slug_max_attempts

    # -- helpers -----------------------------------------------------------

    def _not_found(self, node_id: Any) -> NotFoundError:
        return NotFoundError(self.kind.label, node_id)

    def _parent_not_found(self, parent_id: Any) -> NotFoundError:
        return NotFoundError(f"Parent {self.kind.label.lower()}", parent_id, field="parent_id")

    def _structural(self, enabled: bool = True):
        if not enabled:
            return nullcontext()
        return structural_lock(self.session, self.kind.key)

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[None]:
        try:
            yield
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            logger.warning("%s write hit a unique constraint: %s", self.kind.label, exc.orig)
            raise ConflictError("Slug already exists", field="slug") from exc
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error("%s transaction failed", self.kind.label, exc_info=True)
            raise DatabaseError("commit", str(exc)) from exc
        except DatabaseError:
            await self.session.rollback()
            raise
        except ServiceError:
            # Domain checks run before anything is flushed, so there is nothing
            # to undo. Ending the read transaction this way releases the
            # advisory lock and keeps the caller's loaded rows usable, where a
            # rollback would expire them.
            await self.session.commit()
            raise
        except Exception:
            await self.session.rollback()
            raise

    async def _require(self, node_id: UUID) -> TaxonomyNodeBase:
        node = await self.store.find_by_id(node_id)
        if node is None:
            raise self._not_found(node_id)
        return node

    def _checked_slug(self, requested: str) -> str:
        slug = normalize_slug(requested)
        if not is_valid_slug(slug):
            raise ValidationError(
                "Slug may only contain lowercase letters, digits and single hyphens",
                field="slug",
            )
        return slug

    async def _resolve_new_slug(self, name: str, requested: str | None) -> str:
        if requested:
            slug = self._checked_slug(requested)
            if await self.store.slug_exists(slug):
                raise ConflictError(f'Slug "{slug}" already exists', field="slug")
            return slug

        base_slug = generate_slug(name)
        if not base_slug:
            raise ValidationError("Name must contain letters or digits to build a slug", field="name")
        return await generate_unique_slug(
            base_slug,
            self.store.slug_exists,
            max_attempts=self.slug_max_attempts,
        )

    async def _next_sort_order(self, parent_id: UUID | None) -> int:
        current = await self.store.max_sort_order(parent_id)
        return 0 if current is None else current + 1

    # -- reads -------------------------------------------------------------

    async def get_by_id(self, node_id: UUID) -> TaxonomyNodeBase:
        return await self._require(node_id)

    async def get_by_slug(self, slug: str) -> TaxonomyNodeBase:
        node = await self.store.find_by_slug(slug)
        if node is None:
            raise NotFoundError(self.kind.label, slug)
        return node

    async def get_tree(self, active_only: bool = False) -> list[TreeNode]:
        return build_tree(await self.store.find_all(active_only=active_only))

    async def get_select_options(self, active_only: bool = False) -> list[dict[str, Any]]:
        return format_tree_for_select(await self.get_tree(active_only=active_only))

    async def get_breadcrumb(self, node_id: UUID) -> list[dict[str, Any]]:
        snapshot = await self.store.index_by_id()
        if node_id not in snapshot:
            raise self._not_found(node_id)
        return get_breadcrumb(node_id, snapshot)

    async def get_ancestor_ids(self, node_id: UUID) -> list[UUID]:
        snapshot = await self.store.index_by_id()
        if node_id not in snapshot:
            raise self._not_found(node_id)
        return get_ancestor_ids(node_id, snapshot)

    async def get_depth(self, node_id: UUID) -> int:
        snapshot = await self.store.index_by_id()
        if node_id not in snapshot:
            raise self._not_found(node_id)
        return get_depth(node_id, snapshot)

    async def get_descendant_ids(self, node_id: UUID) -> list[UUID]:
        """Every node below ``node_id``, nearest levels first.

        Content listings use this to include items filed under subcategories.
        """
        snapshot = await self.store.index_by_id()
        if node_id not in snapshot:
            raise self._not_found(node_id)
        return get_descendant_ids(node_id, snapshot)

    async def get_children(self, parent_id: UUID) -> list[TaxonomyNodeBase]:
        await self._require(parent_id)
        return await self.store.find_children(parent_id)

    async def get_active(self) -> list[TaxonomyNodeBase]:
        return await self.store.find_all(active_only=True)

    async def list_nodes(
        self,
        *,
        page: int = 1,
        limit: int = 50,
        parent_id: UUID | None = None,
        roots_only: bool = False,
        is_active: bool | None = None,
        search: str | None = None,
    ) -> NodePage[TaxonomyNodeBase]:
        return await self.store.find_with_filters(
            page=page,
            limit=limit,
            parent_id=parent_id,
            roots_only=roots_only,
            is_active=is_active,
            search=search,
        )

    async def search(self, query: str, limit: int = 10) -> list[TaxonomyNodeBase]:
        if not query.strip():
            return []
        return await self.store.search_by_name(query, limit)

    # -- writes ------------------------------------------------------------

    async def create(self, data: CategoryCreateRequest) -> TaxonomyNodeBase:
        name = clean_category_name(data.name)
        if not name:
            raise ValidationError(f"{self.kind.label} name cannot be empty.", field="name")

        async with self._structural(data.parent_id is not None):
            async with self._transaction():
                slug = await self._resolve_new_slug(name, data.slug)
                if data.parent_id is not None:
                    if await self.store.find_by_id(data.parent_id) is None:
                        raise self._parent_not_found(data.parent_id)
                sort_order = (
                    data.sort_order
                    if data.sort_order is not None
                    else await self._next_sort_order(data.parent_id)
                )
                node = await self.store.create(
                    {
                        "name": name,
                        "slug": slug,
                        "description": data.description or "",
                        "parent_id": data.parent_id,
                        "image": data.image,
                        "sort_order": sort_order,
                        "is_active": data.is_active,
                        **_seo_columns(data.seo),
                    }
                )

        logger.info("%s created id=%s slug=%s", self.kind.label, node.id, node.slug)
        return node

    async def update(self, node_id: UUID, data: CategoryUpdateRequest) -> TaxonomyNodeBase:
        patch = data.model_dump(exclude_unset=True, exclude={"seo"})
        patch = {
            key: value
            for key, value in patch.items()
            if value is not None or key in NULLABLE_PATCH_FIELDS
        }
        if "seo" in data.model_fields_set:
            patch.update(_seo_columns(data.seo))
        if "name" in patch:
            patch["name"] = clean_category_name(patch["name"])
            if not patch["name"]:
                raise ValidationError(f"{self.kind.label} name cannot be empty.", field="name")

        async with self._structural("parent_id" in patch):
            async with self._transaction():
                node = await self._require(node_id)

                if "slug" in patch:
                    patch["slug"] = self._checked_slug(patch["slug"])
                    if patch["slug"] != node.slug and await self.store.slug_exists(
                        patch["slug"], exclude_id=node_id
                    ):
                        raise ConflictError(f'Slug "{patch["slug"]}" already exists', field="slug")

                if "parent_id" in patch and patch["parent_id"] != node.parent_id:
                    new_parent_id = patch["parent_id"]
                    if new_parent_id is not None:
                        snapshot = await self.store.index_by_id()
                        validate_no_parent_cycle(node_id, new_parent_id, snapshot)
                        if new_parent_id not in snapshot:
                            raise self._parent_not_found(new_parent_id)
                else:
                    patch.pop("parent_id", None)

                updated = await self.store.update_by_id(node_id, patch)
                if updated is None:
                    raise self._not_found(node_id)

        logger.info(
            "%s updated id=%s fields=%s", self.kind.label, node_id, sorted(patch.keys())
        )
        return updated

    async def delete(self, node_id: UUID, *, reparent_children: bool = False) -> TaxonomyNodeBase:
        """Remove a node, detaching it from content first.

        Children block the delete unless ``reparent_children`` is set, in which
        case they move up to the deleted node's own parent in one statement.
        Returns the removed node so callers can still read its slug.
        """
        async with self._structural():
            async with self._transaction():
                node = await self._require(node_id)

                if await self.store.has_children(node_id):
                    if not reparent_children:
                        raise StructuralConflictError(DELETE_WITH_CHILDREN_MESSAGE)
                    moved = await self.store.reparent_children(node_id, node.parent_id)
                    logger.info(
                        "%s children reparented from=%s to=%s count=%s",
                        self.kind.label,
                        node_id,
                        node.parent_id or "root",
                        moved,
                    )

                detached = await self.content_references.remove_category_references(node_id)
                if detached:
                    logger.info(
                        "%s detached from content id=%s references=%s",
                        self.kind.label,
                        node_id,
                        detached,
                    )

                await self.store.delete_by_id(node_id)

        logger.info("%s deleted id=%s", self.kind.label, node_id)
        return node

    async def update_order(self, node_id: UUID, sort_order: int) -> TaxonomyNodeBase:
        async with self._transaction():
            updated = await self.store.update_by_id(node_id, {"sort_order": sort_order})
            if updated is None:
                raise self._not_found(node_id)
        return updated

    async def bulk_update_order(self, updates: Iterable[tuple[UUID, int]]) -> int:
        updates = list(updates)
        async with self._transaction():
            known = set((await self.store.index_by_id()).keys())
            missing = [node_id for node_id, _ in updates if node_id not in known]
            if missing:
                raise self._not_found(missing[0])
            touched = await self.store.bulk_update_order(updates)

        logger.info("%s orders updated count=%s", self.kind.label, touched)
        return touched

    async def toggle_active(self, node_id: UUID) -> TaxonomyNodeBase:
        async with self._transaction():
            node = await self._require(node_id)
            updated = await self.store.update_by_id(node_id, {"is_active": not node.is_active})
            if updated is None:
                raise self._not_found(node_id)

        logger.info(
            "%s active status toggled id=%s is_active=%s",
            self.kind.label,
            node_id,
            updated.is_active,
        )
        return updated
