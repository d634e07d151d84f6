"""Profile service for the user's display name and avatar."""

from typing import Dict, Any
from datetime import datetime
import logging

from shared.config import get_setting
from shared.dynamodb import DynamoDBClient
from shared.validators import parse_model
from shared.exceptions import FinanceTrackerException, NotFoundError
from profiles.models import Profile, ProfileInput
from receipts.upload import ReceiptStorage

logger = logging.getLogger(__name__)

AVATAR_FOLDER = 'avatars'


class ProfileService:
    """Service for managing user profiles."""

    def __init__(self):
        """Initialize profile service."""
        self.profiles_table = DynamoDBClient(get_setting('PROFILES_TABLE'))
        self.images = ReceiptStorage()

    def get_profile(self, user_id: str) -> Dict[str, Any]:
        """
        Get a user's profile.

        The avatar, when set, is returned as a presigned avatar_url.

        Raises:
            NotFoundError: If the user has no profile yet
        """
        profile = self.profiles_table.get_item({'user_id': user_id})

        if not profile:
            raise NotFoundError("Profile not found")

        if profile.get('avatar_key'):
            profile['avatar_url'] = self.images.image_url(user_id, profile['avatar_key'])

        return profile

    def update_profile(self, user_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create or replace a user's profile.

        A new avatar upload replaces the stored one; sending avatar_key empty
        removes it; leaving it out keeps it.

        Args:
            user_id: User ID
            payload: first_name, last_name, optional avatar upload or avatar_key

        Returns:
            Stored profile

        Raises:
            ValidationError: If validation fails
            StorageError: If the avatar upload fails
        """
        profile_input = parse_model(ProfileInput, payload)
        existing = self.profiles_table.get_item({'user_id': user_id}) or {}

        old_key = existing.get('avatar_key')
        new_key = old_key
        uploaded_key = None

        if profile_input.avatar:
            uploaded_key = self.images.upload_image(
                user_id,
                profile_input.avatar.model_dump(),
                folder=AVATAR_FOLDER
            )
            new_key = uploaded_key
        elif 'avatar_key' in profile_input.model_fields_set:
            new_key = profile_input.avatar_key or None
            if new_key:
                self.images.check_owner(user_id, new_key)

        now = datetime.utcnow().isoformat()
        profile = Profile(
            user_id=user_id,
            first_name=profile_input.first_name,
            last_name=profile_input.last_name,
            avatar_key=new_key,
            created_at=existing.get('created_at') or now,
            updated_at=now
        ).model_dump(exclude_none=True)

        try:
            self.profiles_table.put_item(profile)
        except FinanceTrackerException:
            self.images.discard_image(user_id, uploaded_key)
            raise

        if old_key and old_key != new_key:
            self.images.discard_image(user_id, old_key)

        logger.info(f"Updated profile for user {user_id}")

        if new_key:
            profile['avatar_url'] = self.images.image_url(user_id, new_key)

        return profile
