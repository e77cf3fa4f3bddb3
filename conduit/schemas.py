from pydantic import BaseModel, ConfigDict, EmailStr, Field


# --- User ---

class RegisterUser(BaseModel):
    username: str = Field(min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(min_length=8)


class RegisterRequest(BaseModel):
    user: RegisterUser


class LoginUser(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class LoginRequest(BaseModel):
    user: LoginUser


class UpdateUser(BaseModel):
    username: str | None = Field(None, min_length=1, max_length=100)
    email: EmailStr | None = None
    password: str | None = Field(None, min_length=8)
    bio: str | None = None
    image: str | None = None


class UpdateUserRequest(BaseModel):
    user: UpdateUser


# --- Article ---

class NewArticle(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    description: str = Field(min_length=1)
    body: str = Field(min_length=1)
    tag_list: list[str] = Field(default_factory=list, alias="tagList")

    model_config = ConfigDict(populate_by_name=True)


class NewArticleRequest(BaseModel):
    article: NewArticle


class UpdateArticle(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=300)
    description: str | None = Field(None, min_length=1)
    body: str | None = Field(None, min_length=1)
    tag_list: list[str] | None = Field(None, alias="tagList")

    model_config = ConfigDict(populate_by_name=True)


class UpdateArticleRequest(BaseModel):
    article: UpdateArticle


class ArticleFilters(BaseModel):
    tag: str | None = None
    author: str | None = None
    favorited: str | None = None


# --- Comment ---

class NewComment(BaseModel):
    body: str = Field(min_length=1)


class NewCommentRequest(BaseModel):
    comment: NewComment
