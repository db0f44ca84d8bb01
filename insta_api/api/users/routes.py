# insta_api/api/users/routes.py
from flask import Blueprint, request, current_app

from insta_api.api.users.schemas import (
    UserResponseSchema, UserProfileSchema, UserSummarySchema, SuggestedUserSchema,
    FollowersSchema, FollowingsSchema, UserUpdateSchema, AdminUserUpdateSchema,
    ChangePasswordSchema, SearchQuerySchema,
)
from insta_api.core.query import parse_list_options
from insta_api.core.responses import success, failure, paginated
from insta_api.core.security import admin_only, protect_blueprint, require_self_or_admin, with_auth

users_bp = Blueprint('users_bp', __name__)
protect_blueprint(users_bp)

# Fields an admin may filter the account listing on.
USER_FILTERS = ('username', 'email', 'tick', 'is_admin', 'gender', 'current_city')
# Page size of suggestions when the client sends no `limit`.
SUGGESTED_LIMIT = 5


@users_bp.route('', methods=['GET'])
@admin_only
def get_users():
    """All accounts, paginated. Admin only."""
    user_service = current_app.services['users']
    options = parse_list_options(request.args, allowed_filters=USER_FILTERS,
                                 sortable=('created_at', 'username', 'full_name'))
    users, total = user_service.list_users(options)
    return paginated(UserResponseSchema(many=True).dump(users), options, total)


@users_bp.route('/<string:user_id>', methods=['GET'])
def get_user(user_id: str):
    user_service = current_app.services['users']
    user = user_service.get_by_id(user_id)
    return success(UserResponseSchema().dump(user))


@users_bp.route('/<string:user_id>', methods=['PUT'])
@with_auth
def update_user(user_id: str, auth):
    """
    Updates profile attributes of an account.
    - The account itself or an admin may call it.
    - Only admins may change `tick` and `isAdmin`.
    """
    require_self_or_admin(user_id)
    user_service = current_app.services['users']

    schema = AdminUserUpdateSchema() if auth.is_admin else UserUpdateSchema()
    data = schema.load(request.get_json(silent=True) or {})
    updated_user = user_service.update_user(user_id, data)
    return success(UserResponseSchema().dump(updated_user))


@users_bp.route('/<string:user_id>', methods=['DELETE'])
def delete_user(user_id: str):
    """Deletes an account. The account itself or an admin may call it."""
    require_self_or_admin(user_id)
    user_service = current_app.services['users']
    user_service.delete_user(user_id)
    return success()


@users_bp.route('/follow/<string:user_id>', methods=['PUT'])
@with_auth
def follow_user(user_id: str, auth):
    """Follow toggle: follows the account, or unfollows it when already followed."""
    if user_id == auth.user_id:
        return failure("You can't follow yourself!", 400)

    user_service = current_app.services['users']
    following = user_service.toggle_follow(auth.user_id, user_id)
    return success({'user_id': user_id, 'following': following})


@users_bp.route('/suggested/results', methods=['GET'])
@with_auth
def get_suggested_users(auth):
    user_service = current_app.services['users']
    options = parse_list_options(request.args, default_limit=SUGGESTED_LIMIT)
    users, total = user_service.get_suggested(auth.user_id, options)
    return paginated(SuggestedUserSchema(many=True).dump(users), options, total)


@users_bp.route('/search/results', methods=['GET'])
def search_users():
    user_service = current_app.services['users']
    q = SearchQuerySchema().load(request.args)['q']
    options = parse_list_options(request.args)
    users, total = user_service.search(q, options)
    return paginated(UserSummarySchema(many=True).dump(users), options, total)


@users_bp.route('/followers/results', methods=['GET'])
@with_auth
def get_followers(auth):
    user_service = current_app.services['users']
    user = user_service.get_followers(auth.user_id)
    return success(FollowersSchema().dump(user))


@users_bp.route('/followings/results', methods=['GET'])
@with_auth
def get_followings(auth):
    user_service = current_app.services['users']
    user = user_service.get_followings(auth.user_id)
    return success(FollowingsSchema().dump(user))


@users_bp.route('/profile/<string:username>', methods=['GET'])
def get_profile(username: str):
    user_service = current_app.services['users']
    profile = user_service.get_profile_by_username(username)
    return success(UserProfileSchema().dump(profile))


@users_bp.route('/change/password', methods=['PUT'])
@with_auth
def change_password(auth):
    user_service = current_app.services['users']
    data = ChangePasswordSchema().load(request.get_json(silent=True) or {})
    user_service.change_password(auth.user_id, data['password'], data['new_password'])
    return success(message="Password changed")
