from blogspace.models import (
    Article,
    ArticleCounts,
    ArticleView,
    Comment,
    CommentView,
    Tag,
    TagPublic,
    User,
    UserCounts,
    UserProfile,
    UserPublic,
)


def article_view(
    article: Article,
    *,
    author: User,
    tags: list[Tag],
    likes: int,
    comments: int,
    is_liked: bool = False,
    is_bookmarked: bool = False,
) -> ArticleView:
    return ArticleView(
        **article.model_dump(),
        author=UserPublic.model_validate(author),
        tags=[TagPublic.model_validate(tag) for tag in tags],
        counts=ArticleCounts(likes=likes, comments=comments),
        is_liked=is_liked,
        is_bookmarked=is_bookmarked,
    )


def comment_view(comment: Comment, *, author: User) -> CommentView:
    return CommentView(
        **comment.model_dump(),
        author=UserPublic.model_validate(author),
    )


def user_profile(
    user: User,
    *,
    articles: int,
    followers: int,
    following: int,
    is_following: bool = False,
) -> UserProfile:
    public = UserPublic.model_validate(user)
    return UserProfile(
        **public.model_dump(),
        counts=UserCounts(articles=articles, followers=followers, following=following),
        is_following=is_following,
    )
