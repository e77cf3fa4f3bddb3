import re

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession
from conduit.database import get_db
from conduit.dependencies import PaginationParams, get_current_user_id, get_optional_user_id
from conduit.errors import ErrorKind, ServiceError
from conduit.schemas import ArticleFilters, NewArticleRequest, NewCommentRequest, UpdateArticleRequest
from conduit.services import article_service, comment_service

router = APIRouter(prefix="/api/articles", tags=["articles"])

# Comment ids are signed 64-bit database keys written as plain ASCII digits.
_COMMENT_ID = re.compile(r"[0-9]+")
_MAX_COMMENT_ID = 2**63 - 1

def _parse_comment_id(raw: str) -> int:
    if not _COMMENT_ID.fullmatch(raw):
        raise ServiceError(ErrorKind.MALFORMED_ID)
    value = int(raw)
    if value > _MAX_COMMENT_ID:
        raise ServiceError(ErrorKind.MALFORMED_ID)
    return value

@router.get("")
async def list_articles(
    filters: ArticleFilters = Depends(),
    pagination: PaginationParams = Depends(),
    viewer_id: int | None = Depends(get_optional_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await article_service.list_articles(
        db, filters, viewer_id, pagination.limit, pagination.offset
    )

# Declared before "/{slug}" so "feed" is not captured as a slug.
@router.get("/feed")
async def feed_articles(
    pagination: PaginationParams = Depends(),
    viewer_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await article_service.feed_articles(db, viewer_id, pagination.limit, pagination.offset)

@router.post("", status_code=201)
async def create_article(
    data: NewArticleRequest,
    viewer_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return {"article": await article_service.create_article(db, viewer_id, data.article)}

@router.get("/{slug}")
async def get_article(
    slug: str,
    viewer_id: int | None = Depends(get_optional_user_id),
    db: AsyncSession = Depends(get_db),
):
    return {"article": await article_service.get_article(db, slug, viewer_id)}

@router.put("/{slug}")
async def update_article(
    slug: str,
    data: UpdateArticleRequest,
    viewer_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return {"article": await article_service.update_article(db, viewer_id, slug, data.article)}

@router.delete("/{slug}")
async def delete_article(
    slug: str,
    viewer_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    await article_service.delete_article(db, viewer_id, slug)
    return Response(status_code=200)

@router.post("/{slug}/favorite")
async def favorite_article(
    slug: str,
    viewer_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return {"article": await article_service.favorite_article(db, viewer_id, slug)}

@router.delete("/{slug}/favorite")
async def unfavorite_article(
    slug: str,
    viewer_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return {"article": await article_service.unfavorite_article(db, viewer_id, slug)}

@router.get("/{slug}/comments")
async def get_comments(
    slug: str,
    viewer_id: int | None = Depends(get_optional_user_id),
    db: AsyncSession = Depends(get_db),
):
    return {"comments": await comment_service.get_comments(db, slug, viewer_id)}

@router.post("/{slug}/comments", status_code=201)
async def add_comment(
    slug: str,
    data: NewCommentRequest,
    viewer_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return {"comment": await comment_service.add_comment(db, viewer_id, slug, data.comment.body)}

@router.delete("/{slug}/comments/{comment_id}")
async def delete_comment(
    slug: str,
    comment_id: str,
    viewer_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    await comment_service.delete_comment(db, viewer_id, slug, _parse_comment_id(comment_id))
    return Response(status_code=200)
