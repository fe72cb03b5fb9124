from typing import Any

from fastapi import APIRouter, HTTPException, Query

from aiassess import crud
from aiassess.api.deps import AuditLoggerDep, CurrentUser, SessionDep
from aiassess.frameworks import question_belongs_to_frameworks
from aiassess.models import AnswerPublic, AnswerUpsert, Message, QuestionPublic

router = APIRouter()


@router.get("/questions", response_model=list[QuestionPublic])
def read_questions(
    session: SessionDep,
    frameworks: list[str] | None = Query(default=None),
    domain_id: str | None = None,
) -> Any:
    questions = crud.list_questions(session=session, domain_id=domain_id)
    if not frameworks:
        return questions
    return [q for q in questions if question_belongs_to_frameworks(q.frameworks or [], frameworks)]


@router.get("/answers", response_model=list[AnswerPublic])
def read_answers(session: SessionDep, current_user: CurrentUser) -> Any:
    return crud.list_answers(session=session, user_id=current_user.id)


@router.put("/answers/{question_id}", response_model=AnswerPublic)
def save_answer(
    question_id: str,
    answer_in: AnswerUpsert,
    session: SessionDep,
    current_user: CurrentUser,
    audit_logger: AuditLoggerDep,
) -> Any:
    if not crud.get_question(session=session, question_id=question_id):
        raise HTTPException(status_code=404, detail="Question not found")

    answer, created = crud.upsert_answer(
        session=session, user_id=current_user.id, question_id=question_id, answer_in=answer_in
    )
    audit_logger.log(
        "answer",
        question_id,
        "create" if created else "update",
        answer_in.model_dump(mode="json", exclude_unset=True),
    )
    return answer


@router.delete("/answers", response_model=Message)
def clear_answers(session: SessionDep, current_user: CurrentUser, audit_logger: AuditLoggerDep) -> Any:
    removed = crud.clear_answers(session=session, user_id=current_user.id)
    audit_logger.log("answer", "all", "delete", {"removed": removed})
    return Message(message=f"{removed} answers cleared")
