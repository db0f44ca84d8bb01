# insta_api/api/posts/routes.py
from flask import Blueprint, request, current_app

from insta_api.api.posts.schemas import (
    PostCreateSchema, PostUpdateSchema, PostResponseSchema, TimelinePostSchema, MediaItemSchema,
)
from insta_api.core.query import parse_list_options
from insta_api.core.responses import success, paginated
from insta_api.core.security import admin_only, protect_blueprint, with_auth

posts_bp = Blueprint('posts_bp', __name__)
protect_blueprint(posts_bp)

POST_FILTERS = ('user_id', 'slug')


@posts_bp.route('', methods=['GET'])
@admin_only
def get_posts():
    post_service = current_app.services['posts']
    options = parse_list_options(request.args, allowed_filters=POST_FILTERS,
                                 sortable=('created_at', 'updated_at'))
    posts, total = post_service.list_posts(options)
    return paginated(PostResponseSchema(many=True).dump(posts), options, total)


@posts_bp.route('/<string:post_id>', methods=['GET'])
def get_post(post_id: str):
    post_service = current_app.services['posts']
    return success(PostResponseSchema().dump(post_service.get_post_by_id(post_id)))


@posts_bp.route('/<string:slug>/slug', methods=['GET'])
def get_post_by_slug(slug: str):
    post_service = current_app.services['posts']
    return success(PostResponseSchema().dump(post_service.get_post_by_slug(slug)))


@posts_bp.route('', methods=['POST'])
@with_auth
def create_post(auth):
    post_service = current_app.services['posts']
    post_data = PostCreateSchema().load(request.get_json(silent=True) or {})
    new_post = post_service.create_post(auth.user_id, post_data)
    return success(PostResponseSchema().dump(new_post))


@posts_bp.route('/<string:post_id>', methods=['PUT'])
@with_auth
def update_post(post_id: str, auth):
    """Edits caption/media. Only the owner or an admin may call it."""
    post_service = current_app.services['posts']
    data = PostUpdateSchema().load(request.get_json(silent=True) or {})
    updated_post = post_service.update_post(post_id, data, auth)
    return success(PostResponseSchema().dump(updated_post))


@posts_bp.route('/<string:post_id>', methods=['DELETE'])
@with_auth
def delete_post(post_id: str, auth):
    post_service = current_app.services['posts']
    post_service.delete_post(post_id, auth)
    return success()


@posts_bp.route('/<string:post_id>/like', methods=['PUT'])
@with_auth
def like_post(post_id: str, auth):
    post_service = current_app.services['posts']
    liked = post_service.toggle_like(post_id, auth.user_id)
    message = "You have been like post!" if liked else "The post has been unliked!"
    return success({'post_id': post_id, 'liked': liked}, message=message)


@posts_bp.route('/<string:post_id>/share', methods=['PUT'])
@with_auth
def share_post(post_id: str, auth):
    post_service = current_app.services['posts']
    post = post_service.share_post(post_id, auth.user_id)
    return success(PostResponseSchema().dump(post), message="The post has been share!")


@posts_bp.route('/timeline/results', methods=['GET'])
@with_auth
def get_timeline(auth):
    """Posts of the caller and of the accounts it follows, newest first by default."""
    post_service = current_app.services['posts']
    user_service = current_app.services['users']

    options = parse_list_options(request.args, sortable=('created_at', 'updated_at'), default_order='desc')
    # read from the store, the token snapshot may predate the latest follow
    followings = user_service.get_by_id(auth.user_id).get('followings') or []
    posts, total = post_service.get_timeline(auth.user_id, followings, options)
    return paginated(TimelinePostSchema(many=True).dump(posts), options, total)


@posts_bp.route('/<string:user_id>/user', methods=['GET'])
def get_posts_by_user(user_id: str):
    post_service = current_app.services['posts']
    posts = post_service.get_posts_by_user(user_id)
    return success(TimelinePostSchema(many=True).dump(posts))


@posts_bp.route('/medias/results', methods=['GET'])
@with_auth
def get_my_medias(auth):
    post_service = current_app.services['posts']
    return success(MediaItemSchema(many=True).dump(post_service.get_medias(auth.user_id)))
