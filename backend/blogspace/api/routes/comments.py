from fastapi import APIRouter, HTTPException, Response

from blogspace.api.deps import CurrentUser, StorageDep

router = APIRouter()


@router.delete("/{id}", status_code=204)
def delete_comment(id: int, storage: StorageDep, current_user: CurrentUser) -> Response:
    """
    Delete a comment and its replies. Allowed for the comment's author and
    the author of the article it was posted on.
    """
    comment = storage.get_comment(id)
    if not comment:
        raise HTTPException(status_code=404, detail="Comment not found")
    if comment.user_id != current_user.id:
        article = storage.get_article_row(comment.article_id)
        if not article or article.author_id != current_user.id:
            raise HTTPException(
                status_code=403, detail="You are not authorized to delete this comment"
            )
    storage.delete_comment(id)
    return Response(status_code=204)
