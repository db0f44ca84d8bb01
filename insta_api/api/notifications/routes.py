# insta_api/api/notifications/routes.py
from flask import Blueprint, request, current_app

from insta_api.api.notifications.schemas import NotificationCreateSchema, NotificationResponseSchema
from insta_api.core.query import parse_list_options, total_pages
from insta_api.core.responses import success, paginated
from insta_api.core.security import admin_only, protect_blueprint, with_auth

notifications_bp = Blueprint('notifications_bp', __name__)
protect_blueprint(notifications_bp)

NOTIFICATION_FILTERS = ('user_id', 'source_id', 'type', 'seen')


@notifications_bp.route('', methods=['GET'])
@admin_only
def get_notifications():
    notification_service = current_app.services['notifications']
    options = parse_list_options(request.args, allowed_filters=NOTIFICATION_FILTERS)
    notifications, total = notification_service.list_notifications(options)
    return paginated(NotificationResponseSchema(many=True).dump(notifications), options, total)


@notifications_bp.route('/me/results', methods=['GET'])
@with_auth
def get_my_notifications(auth):
    """Notifications of the caller, newest first, with the number still unseen."""
    notification_service = current_app.services['notifications']
    options = parse_list_options(request.args)
    notifications, total, unseen = notification_service.get_user_notifications(auth.user_id, options)
    return success(
        NotificationResponseSchema(many=True).dump(notifications),
        currentPage=options.page,
        totalPage=total_pages(total, options.limit),
        totalDocs=total,
        unseen=unseen,
    )


@notifications_bp.route('/<string:notification_id>', methods=['GET'])
@with_auth
def get_notification(notification_id: str, auth):
    notification_service = current_app.services['notifications']
    notification = notification_service.get_notification(notification_id, auth)
    return success(NotificationResponseSchema().dump(notification))


@notifications_bp.route('', methods=['POST'])
@admin_only
def create_notification():
    notification_service = current_app.services['notifications']
    data = NotificationCreateSchema().load(request.get_json(silent=True) or {})
    notification = notification_service.add_notification(
        data['user_id'], data['source_id'], data['type'], data['target_id'], data['seen'],
    )
    return success(NotificationResponseSchema().dump(notification))


@notifications_bp.route('/me/seen', methods=['PUT'])
@with_auth
def mark_all_seen(auth):
    notification_service = current_app.services['notifications']
    updated = notification_service.mark_all_seen(auth.user_id)
    return success({'updated': updated})


@notifications_bp.route('/<string:notification_id>', methods=['PUT'])
@with_auth
def mark_seen(notification_id: str, auth):
    notification_service = current_app.services['notifications']
    notification = notification_service.mark_seen(notification_id, auth)
    return success(NotificationResponseSchema().dump(notification))


@notifications_bp.route('/<string:notification_id>', methods=['DELETE'])
@with_auth
def delete_notification(notification_id: str, auth):
    notification_service = current_app.services['notifications']
    notification_service.delete_notification(notification_id, auth)
    return success()
