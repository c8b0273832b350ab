from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from db import crud, schemas
from db.database import get_database

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("", response_model=list[schemas.User])
async def list_users(database: AsyncIOMotorDatabase = Depends(get_database)):
    return await crud.list_users(database)
