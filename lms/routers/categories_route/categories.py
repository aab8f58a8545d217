from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.concurrency import run_in_threadpool
from pymongo.database import Database

from deps import get_db
from auth.dependencies import get_optional_user, require_role
from repos import categories as repo
from schemas.category_schema import CategoryIn, CategoryOut, CategoryUpdate

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("", response_model=List[CategoryOut])
async def list_categories(
    user: Optional[Dict[str, Any]] = Depends(get_optional_user),
    db: Database = Depends(get_db)
):
    # inactive categories are only listed for admins
    active_only = not (user and user["role"] == "admin")
    return await run_in_threadpool(repo.list_categories, db, active_only)

@router.get("/{category_id}", response_model=CategoryOut)
async def get_category(category_id: str, db: Database = Depends(get_db)):
    category = await run_in_threadpool(repo.get_category, db, category_id)
    if not category:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")
    return category

@router.post("", response_model=CategoryOut, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(require_role("admin"))])
async def create_category(payload: CategoryIn, db: Database = Depends(get_db)):
    return await run_in_threadpool(repo.create_category, db, name=payload.name, description=payload.description)

@router.put("/{category_id}", response_model=CategoryOut, dependencies=[Depends(require_role("admin"))])
async def update_category(category_id: str, payload: CategoryUpdate, db: Database = Depends(get_db)):
    return await run_in_threadpool(repo.update_category, db, category_id, payload.dict(exclude_unset=True))
