"""Root mutation type."""

import logging

import strawberry
from strawberry.types import Info

from ..exceptions import NotFoundError
from .errors import guarded
from .inputs import CategoryInput, DestinationInput, DestinationUpdateInput, VisitInput, to_data
from .types import CategoryType, DestinationType, VisitType

logger = logging.getLogger(__name__)


@strawberry.type
class Mutation:
    @strawberry.mutation
    async def create_destination(self, info: Info, input: DestinationInput) -> DestinationType:
        """Create a destination and link it to ``category_ids`` atomically."""
        destination = await guarded(info.context.services.destinations.create(
            to_data(input, exclude=("category_ids",)),
            category_ids=input.category_ids
        ))
        loaders = info.context.loaders
        loaders.destinations.prime(destination.id, destination)
        loaders.destinations_by_country.clear(destination.country_id)
        if destination.type_id is not None:
            loaders.destinations_by_type.clear(destination.type_id)
        return DestinationType.from_entity(destination)

    @strawberry.mutation
    async def update_destination(self, info: Info, id: int, input: DestinationUpdateInput) -> DestinationType:
        data = to_data(input, exclude=("category_ids",))
        loaders = info.context.loaders

        previous = None
        if "country_id" in data or "type_id" in data:
            try:
                previous = await loaders.destinations.load(id)
            except NotFoundError:
                pass  # update reports the missing row

        destination = await guarded(info.context.services.destinations.update(
            id,
            data,
            category_ids=input.category_ids
        ))
        if destination is None:
            raise NotFoundError(f"No destination found for key {id!r}", entity="destination", key=id)

        loaders.destinations.clear(id)
        loaders.destinations.prime(id, destination)
        loaders.categories_by_destination.clear(id)
        for parent in filter(None, (previous, destination)):
            loaders.destinations_by_country.clear(parent.country_id)
            if parent.type_id is not None:
                loaders.destinations_by_type.clear(parent.type_id)
        return DestinationType.from_entity(destination)

    @strawberry.mutation
    async def hide_destination(self, info: Info, id: int) -> bool:
        """Soft-delete a destination. False when it was already hidden or does not exist."""
        hidden = await guarded(info.context.services.destinations.hide(id))
        info.context.loaders.destinations.clear(id)
        if hidden:
            logger.info(f"Destination {id} hidden")
        return hidden

    @strawberry.mutation
    async def create_category(self, info: Info, input: CategoryInput) -> CategoryType:
        category = await guarded(info.context.services.categories.create(to_data(input)))
        info.context.loaders.categories.prime(category.id, category)
        return CategoryType.from_entity(category)

    @strawberry.mutation
    async def create_visit(self, info: Info, input: VisitInput) -> VisitType:
        loaders = info.context.loaders
        # Both ends of the visit must be visible.
        await loaders.users.load(input.user_id)
        await loaders.destinations.load(input.destination_id)

        visit = await guarded(info.context.services.visits.create(to_data(input)))
        loaders.visits.prime(visit.id, visit)
        loaders.visits_by_user.clear(input.user_id)
        loaders.visits_by_destination.clear(input.destination_id)
        loaders.destination_stats.clear(input.destination_id)
        return VisitType.from_entity(visit)

    @strawberry.mutation
    async def delete_visit(self, info: Info, id: int) -> bool:
        loaders = info.context.loaders
        try:
            visit = await loaders.visits.load(id)
        except NotFoundError:
            return False

        deleted = await guarded(info.context.services.visits.delete(id))
        loaders.visits.clear(id)
        loaders.visits_by_user.clear(visit.user_id)
        loaders.visits_by_destination.clear(visit.destination_id)
        loaders.destination_stats.clear(visit.destination_id)
        return deleted
