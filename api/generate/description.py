"""AI listing description generation for signed-in agents."""

from linknow.services.ai_writer import generate_description
from linknow.services.auth import current_user_id
from linknow.utils.http import JsonRequestHandler


class handler(JsonRequestHandler):

    def do_POST(self):
        self.dispatch(self._generate)

    async def _generate(self):
        body = self.read_json()
        session = await self.session()
        current_user_id(session)
        description = await generate_description(body)
        return 200, {"description": description}
