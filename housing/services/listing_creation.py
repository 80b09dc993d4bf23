"""
Listing creation workflow.

Creates a property row, its amenity associations and its images one step at a
time. The backend offers no transaction spanning these writes, so a failure
part way through is compensated by deleting what was already written.
"""

from typing import Callable, List, Optional, Sequence
import logging
import time

from housing.backend import BackendClient, BackendError
from housing.config import Settings
from housing.models.property import PropertyType
from housing.schemas.auth import AuthUser
from housing.schemas.image import ImageUpload, PropertyImageRecord
from housing.schemas.property import ListingCreateResult, ListingForm, PropertyRecord
from housing.utils.exceptions import RemoteWriteError, UnauthorizedError, ValidationError
from housing.utils.file_utils import ImageValidator, build_storage_key

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]

PROPERTY_TYPES = [t.value for t in PropertyType]


class _WrittenState:
    """What one submission has persisted so far."""

    def __init__(self):
        self.property_id: Optional[str] = None
        self.amenities_written = False
        self.storage_paths: List[str] = []
        self.image_rows_written = False


class ListingCreationService:
    """
    Listing creation bound to a request-scoped backend client.
    """

    def __init__(
        self,
        backend: BackendClient,
        settings: Settings,
        clock: Callable[[], float] = time.time
    ):
        self.backend = backend
        self.settings = settings
        self.clock = clock
        self.validator = ImageValidator(settings.max_image_size)
        self._last_timestamp_ms = 0

    async def create_listing(
        self,
        form: ListingForm,
        images: Sequence[ImageUpload],
        on_progress: Optional[ProgressCallback] = None
    ) -> ListingCreateResult:
        """
        Persist a listing with its amenities and images.

        Args:
            form: Values entered on the listing form
            images: Selected image files in submission order
            on_progress: Called with the upload percentage after every step

        Returns:
            The stored property with its image rows and the progress trail

        Raises:
            UnauthorizedError: If nobody is signed in
            ValidationError: If a field is invalid or no image was selected
            UnsupportedFileTypeError: If an image is not declared as an image type
            FileSizeExceededError: If an image exceeds the size limit
            RemoteWriteError: If a backend write fails
        """
        user = await self.backend.current_user()
        if user is None:
            raise UnauthorizedError("You must be logged in to create a listing.")

        self._validate_form(form)
        if not images:
            raise ValidationError("Please upload at least one image.", field="images")

        state = _WrittenState()
        try:
            return await self._persist(user, form, images, state, on_progress)
        except Exception:
            if self.settings.rollback_partial_listings:
                await self._compensate(state)
            elif state.property_id:
                logger.warning(f"Listing {state.property_id} left partially written")
            raise

    async def _persist(
        self,
        user: AuthUser,
        form: ListingForm,
        images: Sequence[ImageUpload],
        state: _WrittenState,
        on_progress: Optional[ProgressCallback]
    ) -> ListingCreateResult:
        listing = await self._insert_property(user, form)
        state.property_id = str(listing.id)

        if form.amenity_ids:
            await self._insert_amenities(listing, form.amenity_ids)
            state.amenities_written = True

        history: List[int] = []
        half_steps = 0
        total_half_steps = 2 * len(images)

        def advance() -> None:
            nonlocal half_steps
            half_steps += 1
            progress = (half_steps * 100) // total_half_steps
            history.append(progress)
            if on_progress is not None:
                on_progress(progress)

        bucket = self.backend.storage(self.settings.storage_bucket)
        stored: List[PropertyImageRecord] = []

        for upload in images:
            self.validator.validate(upload)
            advance()

            path = build_storage_key(
                user.id, listing.id, upload.filename, self._next_timestamp_ms()
            )
            try:
                await bucket.upload(path, upload.data, upload.content_type, upsert=True)
            except BackendError as e:
                logger.error(f"Upload of {path} failed: {e}")
                raise RemoteWriteError("uploading image", e)
            state.storage_paths.append(path)

            try:
                rows = await self.backend.table("property_images").insert({
                    "property_id": str(listing.id),
                    "storage_path": path,
                    "is_primary": not stored,
                    "public_url": bucket.get_public_url(path),
                })
            except BackendError as e:
                logger.error(f"Image row for {path} failed: {e}")
                raise RemoteWriteError("saving image metadata", e)
            state.image_rows_written = True
            stored.append(PropertyImageRecord.model_validate(rows[0]))
            advance()

        logger.info(
            f"Listing created by {user.email}: {listing.title} "
            f"(ID: {listing.id}, {len(stored)} images, {len(form.amenity_ids)} amenities)"
        )
        return ListingCreateResult(
            listing=listing,
            images=stored,
            amenity_ids=form.amenity_ids,
            progress=100,
            progress_history=history
        )

    def _validate_form(self, form: ListingForm) -> None:
        if not form.title or not form.title.strip():
            raise ValidationError("Title is required.", field="title")

        price = form.parsed_price()
        if price is None or price <= 0:
            raise ValidationError("Price must be a positive number.", field="price")

        if not -90 <= form.latitude <= 90 or not -180 <= form.longitude <= 180:
            raise ValidationError("Please choose a valid location on the map.", field="location")

        property_type = form.property_type.strip()
        if property_type and property_type not in PROPERTY_TYPES:
            raise ValidationError(f"Unknown property type: {property_type}", field="property_type")

    async def _insert_property(self, user: AuthUser, form: ListingForm) -> PropertyRecord:
        try:
            rows = await self.backend.table("properties").insert({
                "title": form.title.strip(),
                "description": form.description.strip() or None,
                "price": str(form.parsed_price()),
                "latitude": form.latitude,
                "longitude": form.longitude,
                "address": form.address.strip() or None,
                "location": form.location.strip() or None,
                "type": form.property_type.strip() or None,
                "landlord_id": str(user.id),
            })
        except BackendError as e:
            logger.error(f"Property insert failed for {user.email}: {e}")
            raise RemoteWriteError("adding property", e)
        if not rows:
            raise RemoteWriteError("adding property", "no row returned")
        return PropertyRecord.model_validate(rows[0])

    async def _insert_amenities(self, listing: PropertyRecord, amenity_ids: List[int]) -> None:
        try:
            await self.backend.table("property_amenities").insert([
                {"property_id": str(listing.id), "amenity_id": amenity_id}
                for amenity_id in amenity_ids
            ])
        except BackendError as e:
            logger.error(f"Amenity insert failed for listing {listing.id}: {e}")
            raise RemoteWriteError("adding amenities", e)

    def _next_timestamp_ms(self) -> int:
        """Epoch milliseconds, strictly increasing within this service."""
        timestamp = max(int(self.clock() * 1000), self._last_timestamp_ms + 1)
        self._last_timestamp_ms = timestamp
        return timestamp

    async def _compensate(self, state: _WrittenState) -> None:
        """Delete partial writes in reverse order; failures here are only logged."""
        if state.property_id is None:
            return

        property_id = state.property_id
        paths = list(state.storage_paths)
        steps = []
        if state.image_rows_written:
            steps.append(("image rows", lambda: self._delete_rows("property_images", property_id)))
        if state.storage_paths:
            bucket = self.backend.storage(self.settings.storage_bucket)
            steps.append(("blobs", lambda: bucket.remove(paths)))
        if state.amenities_written:
            steps.append(("amenity rows", lambda: self._delete_rows("property_amenities", property_id)))
        steps.append(("property row", lambda: self._delete_property(property_id)))

        for name, step in steps:
            try:
                await step()
            except Exception as e:
                logger.error(f"Rollback of {name} for listing {state.property_id} failed: {e}", exc_info=True)

        logger.warning(f"Rolled back partially created listing {state.property_id}")

    async def _delete_rows(self, table: str, property_id: str) -> None:
        await self.backend.table(table).eq("property_id", property_id).delete()

    async def _delete_property(self, property_id: str) -> None:
        await self.backend.table("properties").eq("id", property_id).delete()
