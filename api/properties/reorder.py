"""Reorder the caller's listings: POST {"propertyIds": [...]}."""

from linknow.services import properties
from linknow.utils.errors import ValidationFailed
from linknow.utils.http import JsonRequestHandler


class handler(JsonRequestHandler):

    def do_POST(self):
        self.dispatch(self._reorder)

    async def _reorder(self):
        body = self.read_json()
        property_ids = body.get("propertyIds")
        if not isinstance(property_ids, list) or not all(isinstance(item, str) for item in property_ids):
            raise ValidationFailed("propertyIds", "propertyIds must be a list of ids")
        session = await self.session()
        listings = await properties.reorder_properties(session, property_ids)
        return 200, [listing.model_dump(mode="json") for listing in listings]
