"""
Listing browser service for searching and displaying property listings.
Builds filtered property queries and joins them with primary image lookups.
"""

from typing import Dict, List, Optional, Sequence
import logging
import uuid

from housing.backend import BackendClient, BackendError, TableQuery
from housing.config import Settings
from housing.schemas.amenity import AmenityRecord
from housing.schemas.auth import Profile
from housing.schemas.image import PropertyImageRecord
from housing.schemas.property import ListingCard, ListingDetail, ListingFilters, PropertyRecord
from housing.utils.exceptions import PropertyNotFoundError, RemoteReadError

logger = logging.getLogger(__name__)


class ListingBrowserService:
    """
    Read side of the listings, bound to a request-scoped backend client.
    """

    def __init__(self, backend: BackendClient, settings: Settings):
        self.backend = backend
        self.settings = settings

    async def search(self, filters: Optional[ListingFilters] = None) -> List[ListingCard]:
        """
        Search properties newest first, applying only the filters that are set.

        Args:
            filters: Location, type and price range; None means no filtering

        Returns:
            Listing cards annotated with their primary image URL

        Raises:
            RemoteReadError: If the property query fails
        """
        filters = filters or ListingFilters.reset()
        query = self._base_query()

        if filters.location:
            query.eq("location", filters.location)
        if filters.property_type:
            query.eq("type", filters.property_type.value)
        if filters.min_price is not None:
            query.gte("price", str(filters.min_price))
        if filters.max_price is not None:
            query.lte("price", str(filters.max_price))

        records = await self._fetch_properties(query)
        logger.debug(f"Listing search with {filters.as_query_params()} returned {len(records)} properties")
        return await self._to_cards(records)

    async def latest(self, limit: Optional[int] = None) -> List[ListingCard]:
        """Most recent listings for the home page."""
        query = self._base_query().limit(limit or self.settings.latest_listings_limit)
        return await self._to_cards(await self._fetch_properties(query))

    async def listings_for_landlord(self, landlord_id: uuid.UUID) -> List[ListingCard]:
        """Listings owned by one landlord, newest first."""
        query = self._base_query().eq("landlord_id", str(landlord_id))
        return await self._to_cards(await self._fetch_properties(query))

    async def get_listing(self, property_id: uuid.UUID) -> ListingDetail:
        """
        Get one listing with landlord contact, amenity names and images.

        Raises:
            PropertyNotFoundError: If no property has this id
            RemoteReadError: If the property query fails
        """
        query = self.backend.table("properties").select("*").eq("id", str(property_id))
        records = await self._fetch_properties(query)
        if not records:
            raise PropertyNotFoundError(str(property_id))
        listing = records[0]

        landlord = await self._optional_read(
            "landlord profile",
            self.backend.table("profiles").select("*").eq("id", str(listing.landlord_id))
        )
        landlord_profile = Profile.model_validate(landlord[0]) if landlord else None

        amenity_links = await self._optional_read(
            "amenity links",
            self.backend.table("property_amenities").select("amenity_id").eq("property_id", str(listing.id))
        )
        amenity_names: List[str] = []
        if amenity_links:
            amenity_rows = await self._optional_read(
                "amenities",
                self.backend.table("amenities")
                .select("id,name")
                .in_("id", [row["amenity_id"] for row in amenity_links])
                .order("name")
            )
            amenity_names = [AmenityRecord.model_validate(row).name for row in amenity_rows]

        image_rows = await self._optional_read(
            "images",
            self.backend.table("property_images")
            .select("*")
            .eq("property_id", str(listing.id))
            .order("created_at")
        )
        images = [PropertyImageRecord.model_validate(row) for row in image_rows]
        primary = next((image for image in images if image.is_primary), None)

        return ListingDetail(
            listing=listing,
            landlord=landlord_profile,
            amenities=amenity_names,
            image_url=self._image_url(primary) if primary else self.settings.placeholder_image_url,
            gallery=[self._image_url(image) for image in images]
        )

    async def list_amenities(self) -> List[AmenityRecord]:
        """
        All amenities, alphabetically.

        Raises:
            RemoteReadError: If the amenity query fails
        """
        try:
            rows = await self.backend.table("amenities").select("id,name").order("name").execute()
        except BackendError as e:
            logger.error(f"Failed to load amenities: {e}")
            raise RemoteReadError("loading amenities", e)
        return [AmenityRecord.model_validate(row) for row in rows]

    def _base_query(self) -> TableQuery:
        return self.backend.table("properties").select("*").order("created_at", descending=True)

    async def _fetch_properties(self, query: TableQuery) -> List[PropertyRecord]:
        try:
            rows = await query.execute()
        except BackendError as e:
            logger.error(f"Error fetching properties: {e}")
            raise RemoteReadError("fetching properties", e)
        return [PropertyRecord.model_validate(row) for row in rows]

    async def _optional_read(self, what: str, query: TableQuery) -> List[dict]:
        """Run a secondary query; a failure degrades the page instead of failing it."""
        try:
            return await query.execute()
        except BackendError as e:
            logger.warning(f"Error fetching {what}: {e}")
            return []

    async def _to_cards(self, records: Sequence[PropertyRecord]) -> List[ListingCard]:
        if not records:
            return []

        primary_by_property: Dict[str, PropertyImageRecord] = {}
        rows = await self._optional_read(
            "images",
            self.backend.table("property_images")
            .select("property_id,storage_path,is_primary,public_url")
            .in_("property_id", [str(record.id) for record in records])
            .eq("is_primary", True)
        )
        for row in rows:
            image = PropertyImageRecord.model_validate(row)
            primary_by_property.setdefault(str(image.property_id), image)

        cards = []
        for record in records:
            image = primary_by_property.get(str(record.id))
            image_url = self._image_url(image) if image else self.settings.placeholder_image_url
            cards.append(ListingCard.from_record(record, image_url))
        return cards

    def _image_url(self, image: PropertyImageRecord) -> str:
        bucket = self.backend.storage(self.settings.storage_bucket)
        return bucket.get_public_url(image.storage_path)
