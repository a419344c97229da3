"""
api/routes/v1/blogs.py -- Blog publishing, listing and reading routes.

Routes:
  POST /latest-blogs            -- published blogs, newest first, 5 per page
  POST /all-latest-blogs-count  -- number of published blogs
  GET  /trending-blogs          -- top 5 by reads, then likes, then recency
  POST /search-blog             -- by tag, title query, or author; 4 per page
  POST /search-blog-count       -- number of matches for the same criteria
  POST /create-blog             -- publish or save a draft (bearer token required)
  POST /get-blog                -- full blog; counts a read for blog and author

Handlers are plain `def`: the stores block, so FastAPI runs them in its
thread pool.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from api.models import (
    BlogDetail,
    BlogListResponse,
    BlogResponse,
    BlogSummary,
    CountResponse,
    CreateBlogRequest,
    CreateBlogResponse,
    GetBlogRequest,
    PageRequest,
    SearchBlogRequest,
)
from auth.dependencies import require_user_id
from auth.store import UserStore
from auth.tokens import INVALID_ACCESS_TOKEN
from blogs.models import Blog
from blogs.store import BlogStore, make_blog_id
from core.errors import ErrorKind, InkwellError

logger = logging.getLogger("inkwell.api.blogs")

# Auth policy:
# - POST /create-blog: requires a bearer token (require_user_id)
# - everything else:   public -- anonymous readers browse and read blogs
router = APIRouter()

MAX_DESCRIPTION_LENGTH = 200
MAX_TAGS = 10


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------


@router.post("/latest-blogs", response_model=BlogListResponse)
def latest_blogs(request: Request, body: PageRequest | None = None) -> BlogListResponse:
    page = body.page if body is not None else 1
    blog_store: BlogStore = request.app.state.blog_store
    return BlogListResponse(blogs=[BlogSummary.from_blog(b) for b in blog_store.latest(page)])


@router.post("/all-latest-blogs-count", response_model=CountResponse)
def all_latest_blogs_count(request: Request) -> CountResponse:
    blog_store: BlogStore = request.app.state.blog_store
    return CountResponse(totalDocs=blog_store.count_published())


@router.get("/trending-blogs", response_model=BlogListResponse)
def trending_blogs(request: Request) -> BlogListResponse:
    blog_store: BlogStore = request.app.state.blog_store
    return BlogListResponse(blogs=[BlogSummary.from_blog(b) for b in blog_store.trending()])


@router.post("/search-blog", response_model=BlogListResponse)
def search_blog(request: Request, body: SearchBlogRequest) -> BlogListResponse:
    blog_store: BlogStore = request.app.state.blog_store
    blogs = blog_store.search(tag=body.tag, query=body.query, author_id=body.author, page=body.page)
    return BlogListResponse(blogs=[BlogSummary.from_blog(b) for b in blogs])


@router.post("/search-blog-count", response_model=CountResponse)
def search_blog_count(request: Request, body: SearchBlogRequest) -> CountResponse:
    blog_store: BlogStore = request.app.state.blog_store
    return CountResponse(totalDocs=blog_store.count_search(tag=body.tag, query=body.query, author_id=body.author))


# ---------------------------------------------------------------------------
# Writing
# ---------------------------------------------------------------------------


def validate_blog(body: CreateBlogRequest) -> None:
    """Drafts need only a title; publishing needs the full set of fields."""
    if not body.title.strip():
        raise InkwellError(ErrorKind.INVALID_INPUT, "You must provide a title", field="title")
    if body.draft:
        return
    if not body.des or len(body.des) > MAX_DESCRIPTION_LENGTH:
        raise InkwellError(
            ErrorKind.INVALID_INPUT,
            f"You must provide a blog description under {MAX_DESCRIPTION_LENGTH} characters",
            field="des",
        )
    if not body.banner:
        raise InkwellError(ErrorKind.INVALID_INPUT, "You must provide a blog banner to publish it", field="banner")
    if not body.content.get("blocks"):
        raise InkwellError(
            ErrorKind.INVALID_INPUT, "There must be some blog content to publish it", field="content"
        )
    if not body.tags or len(body.tags) > MAX_TAGS:
        raise InkwellError(
            ErrorKind.INVALID_INPUT,
            f"Provide tags in order to publish the blog, maximum {MAX_TAGS}",
            field="tags",
        )


@router.post("/create-blog", response_model=CreateBlogResponse)
def create_blog(
    request: Request,
    body: CreateBlogRequest,
    user_id: int = Depends(require_user_id),
) -> CreateBlogResponse:
    """Save a blog for the token's user. Publishing bumps their post count."""
    validate_blog(body)

    user_store: UserStore = request.app.state.user_store
    if user_store.get_by_id(user_id) is None:
        # Signed by us, but the account behind it is gone.
        raise InkwellError(ErrorKind.INVALID_CREDENTIAL, INVALID_ACCESS_TOKEN)

    blog = Blog(
        blog_id=make_blog_id(body.title),
        title=body.title,
        author_id=user_id,
        des=body.des,
        banner=body.banner,
        content=body.content,
        tags=[t.lower() for t in body.tags],
        draft=body.draft,
    )
    blog_store: BlogStore = request.app.state.blog_store
    blog_store.create_blog(blog)
    if not blog.draft:
        user_store.increment_counters(user_id, total_posts=1)
    logger.info("Blog saved: blog_id=%s author=%s draft=%s", blog.blog_id, user_id, blog.draft)
    return CreateBlogResponse(id=blog.blog_id)


# ---------------------------------------------------------------------------
# Reading
# ---------------------------------------------------------------------------


@router.post("/get-blog", response_model=BlogResponse)
def get_blog(request: Request, body: GetBlogRequest) -> BlogResponse:
    """Return one blog and count the read against the blog and its author."""
    blog_store: BlogStore = request.app.state.blog_store
    blog = blog_store.get_and_increment_reads(body.blog_id)
    if blog is None:
        raise HTTPException(status_code=404, detail={"code": "not_found", "message": "Blog not found"})
    user_store: UserStore = request.app.state.user_store
    user_store.increment_counters(blog.author_id, total_reads=1)
    return BlogResponse(blog=BlogDetail.from_blog(blog))
