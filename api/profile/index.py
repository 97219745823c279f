"""Own profile endpoint: GET reads, POST creates (once), PATCH updates fields."""

from pydantic import ValidationError

from linknow.models.profile import ProfileCreate
from linknow.services import profiles
from linknow.utils.http import JsonRequestHandler


class handler(JsonRequestHandler):

    def do_GET(self):
        self.dispatch(self._get)

    def do_POST(self):
        self.dispatch(self._create)

    def do_PATCH(self):
        self.dispatch(self._update)

    async def _get(self):
        session = await self.session()
        profile = await profiles.get_own_profile(session)
        return 200, profile.model_dump(mode="json")

    async def _create(self):
        body = self.read_json()
        session = await self.session()
        try:
            payload = ProfileCreate.model_validate(body)
        except ValidationError as e:
            raise profiles.validation_failed_from(e)
        profile = await profiles.create_profile_for_user(session, payload)
        return 201, profile.model_dump(mode="json")

    async def _update(self):
        body = self.read_json()
        session = await self.session()
        profile = await profiles.update_own_profile(session, body)
        return 200, profile.model_dump(mode="json")
