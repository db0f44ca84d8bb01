# insta_api/api/comments/routes.py
from flask import Blueprint, request, current_app

from insta_api.api.comments.schemas import (
    CommentCreateSchema, CommentUpdateSchema, CommentResponseSchema,
    ReplyCreateSchema, ReplyDeleteSchema, ReplyResponseSchema,
)
from insta_api.core.query import parse_list_options
from insta_api.core.responses import success, failure, paginated
from insta_api.core.security import admin_only, protect_blueprint, with_auth

comments_bp = Blueprint('comments_bp', __name__)
protect_blueprint(comments_bp)

COMMENT_FILTERS = ('post_id', 'user_id')


@comments_bp.route('', methods=['GET'])
@admin_only
def get_comments():
    comment_service = current_app.services['comments']
    options = parse_list_options(request.args, allowed_filters=COMMENT_FILTERS)
    comments, total = comment_service.list_comments(options)
    return paginated(CommentResponseSchema(many=True).dump(comments), options, total)


@comments_bp.route('/<string:comment_id>', methods=['GET'])
def get_comment(comment_id: str):
    comment_service = current_app.services['comments']
    return success(CommentResponseSchema().dump(comment_service.get_comment_by_id(comment_id)))


@comments_bp.route('', methods=['POST'])
@with_auth
def create_comment(auth):
    """
    Comments on a post.
    - The post owner receives a `comment` notification.
    """
    comment_service = current_app.services['comments']
    data = CommentCreateSchema().load(request.get_json(silent=True) or {})
    new_comment = comment_service.create_comment(auth.user_id, data['post_id'], data['content'])
    return success(CommentResponseSchema().dump(new_comment))


@comments_bp.route('/<string:comment_id>', methods=['PUT'])
@with_auth
def update_comment(comment_id: str, auth):
    comment_service = current_app.services['comments']
    data = CommentUpdateSchema().load(request.get_json(silent=True) or {})
    comment = comment_service.update_comment(comment_id, data['content'], auth)
    return success(CommentResponseSchema().dump(comment))


@comments_bp.route('/<string:comment_id>', methods=['DELETE'])
@with_auth
def delete_comment(comment_id: str, auth):
    comment_service = current_app.services['comments']
    comment_service.delete_comment(comment_id, auth)
    return success()


@comments_bp.route('/<string:post_id>/post', methods=['GET'])
def get_comments_for_post(post_id: str):
    comment_service = current_app.services['comments']
    options = parse_list_options(request.args)
    comments, total = comment_service.get_comments_for_post(post_id, options)
    return paginated(CommentResponseSchema(many=True).dump(comments), options, total)


@comments_bp.route('/<string:comment_id>/like', methods=['PUT'])
@with_auth
def like_comment(comment_id: str, auth):
    comment_service = current_app.services['comments']
    liked = comment_service.toggle_like(comment_id, auth.user_id)
    message = "You have been like comment!" if liked else "The comment has been unliked!"
    return success({'comment_id': comment_id, 'liked': liked}, message=message)


@comments_bp.route('/reply/<string:comment_id>', methods=['POST'])
@with_auth
def create_reply(comment_id: str, auth):
    comment_service = current_app.services['comments']
    data = ReplyCreateSchema().load(request.get_json(silent=True) or {})
    reply = comment_service.add_reply(comment_id, auth.user_id, data['content'], data['reply_id'])
    return success(ReplyResponseSchema().dump(reply), message="Replied to the comment!")


@comments_bp.route('/reply/<string:comment_id>', methods=['DELETE'])
@with_auth
def delete_reply(comment_id: str, auth):
    """Removes a reply. Allowed for its author, the owner of the post, or an admin."""
    comment_service = current_app.services['comments']
    data = ReplyDeleteSchema().load(request.get_json(silent=True) or {})
    if not comment_service.delete_reply(comment_id, data['reply_id'], auth):
        return failure("You can delete only your reply!!", 403)
    return success(message="The reply has been deleted!")


@comments_bp.route('/reply/<string:comment_id>/results', methods=['GET'])
def get_replies(comment_id: str):
    comment_service = current_app.services['comments']
    return success(ReplyResponseSchema(many=True).dump(comment_service.get_replies(comment_id)))
