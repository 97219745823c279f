"""Public profile page data, resolved by slug (no authentication)."""

from linknow.services.public_profile import get_public_profile
from linknow.utils.errors import ValidationFailed
from linknow.utils.http import JsonRequestHandler


class handler(JsonRequestHandler):

    def do_GET(self):
        self.dispatch(self._get)

    async def _get(self):
        slug = self.query_params().get("slug")
        if not slug:
            raise ValidationFailed("slug", "Slug is required")
        view = await get_public_profile(slug)
        return 200, view.model_dump(mode="json")
