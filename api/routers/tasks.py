"""
Task and subtask routes.

New tasks and subtasks get their business id from the counter store before
they are written; path ids are always business ids.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from db import crud, schemas
from db.config import settings
from db.database import get_database

router = APIRouter(prefix="/tasks", tags=["Tasks"])


@router.get("/recent", response_model=list[schemas.Task], response_model_exclude_none=True)
async def get_recent_tasks(database: AsyncIOMotorDatabase = Depends(get_database)):
    """Most recently created tasks that are not archived, completed ones included"""
    return await crud.list_recent_tasks(database, settings.recent_tasks_limit)


@router.get("", response_model=list[schemas.Task], response_model_exclude_none=True)
async def list_tasks(database: AsyncIOMotorDatabase = Depends(get_database)):
    """All tasks, pinned first then newest first, with their subtasks"""
    return await crud.list_tasks(database)


@router.post(
    "",
    response_model=schemas.Task,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
async def create_task(task: schemas.TaskCreate, database: AsyncIOMotorDatabase = Depends(get_database)):
    return await crud.create_task(database, task)


@router.post("/clear")
async def clear_tasks(database: AsyncIOMotorDatabase = Depends(get_database)):
    """Delete every task that is not archived"""
    await crud.clear_tasks(database)
    return {"status": "cleared"}


@router.put("/{task_id}", response_model=schemas.Task, response_model_exclude_none=True)
async def update_task(
    task_id: int,
    task_update: schemas.TaskUpdate,
    database: AsyncIOMotorDatabase = Depends(get_database),
):
    updated = await crud.update_task(database, task_id, task_update)
    if not updated:
        raise HTTPException(status_code=404, detail=f"Task with ID {task_id} not found")
    return updated


@router.delete("/{task_id}")
async def delete_task(task_id: int, database: AsyncIOMotorDatabase = Depends(get_database)):
    await crud.delete_task(database, task_id)
    return {"status": "deleted"}


@router.post(
    "/{task_id}/subtasks",
    response_model=schemas.Subtask,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
async def create_subtask(
    task_id: int,
    subtask: schemas.SubtaskCreate,
    database: AsyncIOMotorDatabase = Depends(get_database),
):
    if not await crud.get_task(database, task_id, with_subtasks=False):
        raise HTTPException(status_code=404, detail=f"Task with ID {task_id} not found")
    return await crud.create_subtask(database, task_id, subtask)


@router.put(
    "/{task_id}/subtasks/{subtask_id}",
    response_model=schemas.Subtask,
    response_model_exclude_none=True,
)
async def update_subtask(
    task_id: int,
    subtask_id: int,
    subtask_update: schemas.SubtaskUpdate,
    database: AsyncIOMotorDatabase = Depends(get_database),
):
    updated = await crud.update_subtask(database, task_id, subtask_id, subtask_update)
    if not updated:
        raise HTTPException(
            status_code=404,
            detail=f"Subtask with ID {subtask_id} not found for task {task_id}",
        )
    return updated


@router.delete("/{task_id}/subtasks/{subtask_id}")
async def delete_subtask(
    task_id: int,
    subtask_id: int,
    database: AsyncIOMotorDatabase = Depends(get_database),
):
    await crud.delete_subtask(database, task_id, subtask_id)
    return {"status": "deleted"}
