import logging
import os
import shutil
import time

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.orm import Session

from backend.auth.dependencies import get_optional_user_id
from backend.core import config
from backend.core.errors import AppError, BadInput, NotFound, Unauthorized
from backend.database import get_db
from backend.repositories.users import UserRepository
from backend.schemas import (
    ConnectionCreate,
    ConnectionResponse,
    PictureResponse,
    ReviewCreate,
    ReviewResponse,
    SubjectCreate,
    SubjectResponse,
    UserCreate,
    UserResponse,
    UserUpdate,
)

router = APIRouter(tags=['users'])

logger = logging.getLogger(__name__)


@router.post('', response_model=UserResponse)
def create_user(data: UserCreate, db: Session = Depends(get_db)):
    return UserRepository(db).register(**data.model_dump())


@router.get('', response_model=list[UserResponse])
def list_users(db: Session = Depends(get_db)):
    return UserRepository(db).list()


@router.get('/{user_id}', response_model=UserResponse)
def get_user(user_id: int, db: Session = Depends(get_db)):
    try:
        return UserRepository(db).get(user_id)
    except NotFound as exc:
        # Lookup failures on this route answer 401, as the frontend expects.
        raise Unauthorized('Error retrieving user') from exc


@router.put('/{user_id}', response_model=UserResponse)
def update_user(user_id: int, data: UserUpdate, db: Session = Depends(get_db)):
    return UserRepository(db).update(user_id, data.model_dump(exclude_unset=True))


@router.delete('/{user_id}', response_model=UserResponse)
def delete_user(user_id: int, db: Session = Depends(get_db)):
    user = UserRepository(db).delete(user_id)
    return UserResponse.model_validate(user)


@router.post('/{user_id}/subjects', response_model=SubjectResponse)
def add_subject(user_id: int, data: SubjectCreate, db: Session = Depends(get_db)):
    return UserRepository(db).add_subject(user_id, data.name)


@router.delete('/{user_id}/subjects/{subject_id}', response_model=SubjectResponse)
def remove_subject(user_id: int, subject_id: int, db: Session = Depends(get_db)):
    return UserRepository(db).remove_subject(user_id, subject_id)


@router.post('/{user_id}/connections', response_model=ConnectionResponse)
def add_connection(user_id: int, data: ConnectionCreate, db: Session = Depends(get_db)):
    return UserRepository(db).add_connection(user_id, data.user_id)


@router.delete('/{user_id}/connections/{other_id}', response_model=ConnectionResponse)
def remove_connection(user_id: int, other_id: int, db: Session = Depends(get_db)):
    return UserRepository(db).remove_connection(user_id, other_id)


@router.post('/{user_id}/reviews', response_model=ReviewResponse)
def add_review(
    user_id: int,
    data: ReviewCreate,
    reviewer_id: int | None = Depends(get_optional_user_id),
    db: Session = Depends(get_db),
):
    return UserRepository(db).add_review(
        user_id,
        rating=data.rating,
        content=data.content,
        reviewer_id=reviewer_id,
    )


def build_picture_filename(user_id: int, original_name: str | None) -> str:
    base_name = os.path.basename(original_name or '') or 'picture'
    return f'{user_id}_{int(time.time())}_{base_name}'


@router.post('/{user_id}/picture', response_model=PictureResponse)
def upload_picture(
    user_id: int,
    file: UploadFile | None = File(None),
    db: Session = Depends(get_db),
):
    if file is None:
        raise BadInput('Error uploading file')

    repository = UserRepository(db)
    repository.get(user_id)

    filename = build_picture_filename(user_id, file.filename)
    try:
        os.makedirs(config.UPLOAD_DIR, exist_ok=True)
        with open(os.path.join(config.UPLOAD_DIR, filename), 'wb') as destination:
            shutil.copyfileobj(file.file, destination)
    except OSError as exc:
        logger.exception('Failed to save picture for user %s', user_id)
        raise AppError('Error saving file', 500) from exc
    finally:
        file.file.close()

    repository.set_picture(user_id, filename)
    return PictureResponse(filename=filename)
