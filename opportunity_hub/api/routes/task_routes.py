"""
Task Routes (personal to-do list)

GET /tasks - Own tasks, incomplete first
POST /tasks - Create a task
PUT|PATCH /tasks/{task_id} - Update a task
DELETE /tasks/{task_id} - Delete a task
"""

import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import text

from opportunity_hub.core.auth import get_current_user
from opportunity_hub.db.postgres import execute_raw_sql, get_db_session
from opportunity_hub.schemas.schemas import MessageResponse, TaskCreate, TaskResponse, TaskUpdate
from opportunity_hub.utils.dates import utc_now

router = APIRouter(prefix="/tasks", tags=["Tasks"])

TASK_COLUMNS = "id, title, description, completed, opportunity_link, created_at, updated_at"


def _fetch_task(db, task_id: str, user_id: str):
    return db.execute(
        text(f"SELECT {TASK_COLUMNS} FROM tasks WHERE id = :id AND user_id = :uid"),
        {"id": task_id, "uid": user_id}
    ).mappings().fetchone()


@router.get("")
async def list_tasks(user: dict = Depends(get_current_user)):
    rows = execute_raw_sql(
        f"SELECT {TASK_COLUMNS} FROM tasks WHERE user_id = :uid ORDER BY completed ASC, created_at ASC",
        {"uid": user["id"]}
    )
    return {"tasks": [TaskResponse(**r) for r in rows]}


@router.post("", status_code=201, response_model=TaskResponse)
async def create_task(data: TaskCreate, user: dict = Depends(get_current_user)):
    task_id = str(uuid.uuid4())
    now = utc_now()
    with get_db_session() as db:
        db.execute(
            text("""
                INSERT INTO tasks (id, title, description, completed, opportunity_link, user_id,
                    created_at, updated_at)
                VALUES (:id, :title, :description, FALSE, :link, :uid, :now, :now)
            """),
            {
                "id": task_id, "title": data.title.strip(), "description": data.description,
                "link": data.opportunity_link, "uid": user["id"], "now": now
            }
        )
        row = _fetch_task(db, task_id, user["id"])
    return TaskResponse(**row)


@router.put("/{task_id}", response_model=TaskResponse)
@router.patch("/{task_id}", response_model=TaskResponse)
async def update_task(task_id: str, data: TaskUpdate, user: dict = Depends(get_current_user)):
    updates = data.model_dump(exclude_unset=True)
    with get_db_session() as db:
        if not _fetch_task(db, task_id, user["id"]):
            raise HTTPException(status_code=404, detail="Task not found")

        if updates:
            assignments = ", ".join(f"{column} = :{column}" for column in updates)
            db.execute(
                text(f"UPDATE tasks SET {assignments}, updated_at = :now WHERE id = :id"),
                {**updates, "now": utc_now(), "id": task_id}
            )
        row = _fetch_task(db, task_id, user["id"])
    return TaskResponse(**row)


@router.delete("/{task_id}", response_model=MessageResponse)
async def delete_task(task_id: str, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        result = db.execute(
            text("DELETE FROM tasks WHERE id = :id AND user_id = :uid"),
            {"id": task_id, "uid": user["id"]}
        )
        if result.rowcount == 0:
            raise HTTPException(status_code=404, detail="Task not found")
    return MessageResponse(message="Task deleted")
