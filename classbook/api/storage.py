"""Remote roster usage and explicit reload."""
from fastapi import APIRouter

from classbook.api.deps import Repository

router = APIRouter()


@router.get("/")
async def storage_usage(repo: Repository):
    return repo.storage_usage().model_dump()


@router.post("/reload")
async def reload_roster(repo: Repository):
    """Replace the in-memory roster with the remote copy."""
    count = await repo.load()
    return {"students": count}
