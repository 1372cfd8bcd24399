from typing import Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from recipe_import.errors import (
    FetchFailedError,
    InvalidUrlError,
    NetworkTimeoutError,
    RecipeImportError,
    UnsupportedPageError,
)
from recipe_import.models.recipe_schema import Recipe
from recipe_import.orchestrate.run import import_recipe_from_url


class ImportRecipeRequest(BaseModel):
    url: str


STATUS_BY_ERROR = {
    InvalidUrlError: 400,
    UnsupportedPageError: 422,
    FetchFailedError: 502,
    NetworkTimeoutError: 504,
}


def _status_for(error: RecipeImportError) -> int:
    for cls, status in STATUS_BY_ERROR.items():
        if isinstance(error, cls):
            return status
    return 500


app = FastAPI(title="Recipe Import Server (minimal)")


@app.get("/health")
def health():
    return {"status": "ok"}


@app.post("/import", response_model=Recipe, response_model_by_alias=True)
def import_recipe(req: ImportRecipeRequest):
    """Import a recipe from the given URL; the caller persists the result."""
    try:
        return import_recipe_from_url(req.url)
    except RecipeImportError as e:
        detail = {"error": e.kind, "message": e.message}
        status_code: Optional[int] = getattr(e, "status_code", None)
        if status_code is not None:
            detail["statusCode"] = status_code
        raise HTTPException(status_code=_status_for(e), detail=detail)
