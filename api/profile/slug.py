"""Slug availability check for the onboarding link step."""

from linknow.services import profiles
from linknow.services.validation import validate_slug
from linknow.utils.http import JsonRequestHandler


class handler(JsonRequestHandler):

    def do_GET(self):
        self.dispatch(self._check)

    async def _check(self):
        slug = self.query_params().get("slug", "")
        valid, message = validate_slug(slug)
        if not valid:
            return 200, {"slug": slug, "available": False, "message": message}
        session = await self.session()
        available = await profiles.is_slug_available(slug, session)
        return 200, {
            "slug": slug,
            "available": available,
            "message": None if available else "This link is already taken",
        }
