from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException
from starlette.responses import Response
from starlette.types import Scope


class SpaStaticFiles(StaticFiles):
    """
    Static front-end files with a one hour cache lifetime.

    Paths that match no file fall back to ``index.html`` so the front-end can
    do its own routing. The fallback is sent with ``max-age=0`` so deep links
    always revalidate. FileResponse already sets ETag and Last-Modified and
    answers conditional requests with 304.
    """

    def __init__(self, directory: str, index: str = "index.html", max_age: int = 3600):
        # html=False: a 404.html in the directory must not shadow the fallback
        super().__init__(directory=directory, html=False, check_dir=False)
        self.index = index
        self.cache_control = f"public, max-age={max_age}"
        self.fallback_cache_control = "public, max-age=0"

    def file_response(self, full_path, stat_result, scope: Scope, status_code: int = 200) -> Response:
        response = super().file_response(full_path, stat_result, scope, status_code)
        response.headers["Cache-Control"] = self.cache_control
        return response

    async def get_response(self, path: str, scope: Scope) -> Response:
        try:
            return await super().get_response(path, scope)
        except HTTPException as exc:
            if exc.status_code != 404:
                raise
        response = await super().get_response(self.index, scope)
        response.headers["Cache-Control"] = self.fallback_cache_control
        return response
