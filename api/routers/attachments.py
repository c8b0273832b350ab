from fastapi import APIRouter, Depends, HTTPException, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from db import crud, schemas
from db.database import get_database

router = APIRouter(prefix="/tasks/{task_id}/attachments", tags=["Attachments"])


@router.get("", response_model=list[schemas.Attachment], response_model_exclude_none=True)
async def list_attachments(task_id: int, database: AsyncIOMotorDatabase = Depends(get_database)):
    """Attachments of a task, newest first"""
    return await crud.list_attachments(database, task_id)


@router.post(
    "",
    response_model=schemas.Attachment,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
async def create_attachment(
    task_id: int,
    attachment: schemas.AttachmentCreate,
    database: AsyncIOMotorDatabase = Depends(get_database),
):
    if not await crud.get_task(database, task_id, with_subtasks=False):
        raise HTTPException(status_code=404, detail=f"Task with ID {task_id} not found")
    return await crud.create_attachment(database, task_id, attachment)


@router.delete("/{attachment_id}")
async def delete_attachment(
    task_id: int,
    attachment_id: int,
    database: AsyncIOMotorDatabase = Depends(get_database),
):
    await crud.delete_attachment(database, task_id, attachment_id)
    return {"status": "deleted"}
