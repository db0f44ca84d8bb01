# insta_api/api/uploads/routes.py
import logging

from flask import Blueprint, request, current_app

from insta_api.core.errors import BadRequestError
from insta_api.core.responses import success
from insta_api.core.security import protect_blueprint, with_auth

# Every upload API requires a valid access token; none of them is admin-only.
uploads_bp = Blueprint('uploads_bp', __name__)
protect_blueprint(uploads_bp)


@uploads_bp.route('/images', methods=['POST'])
@with_auth
def upload_images(auth):
    """
    Uploads up to UPLOAD_MAX_IMAGES images sent in the multipart field `image`.
    Returns one {public_id, url, type} item per file, in the order received.
    """
    storage_service = current_app.services['storage']
    files = [f for f in request.files.getlist('image') if f and f.filename]
    max_images = current_app.config['UPLOAD_MAX_IMAGES']

    if not files:
        raise BadRequestError("No image file provided in the 'image' field")
    if len(files) > max_images:
        raise BadRequestError(f"At most {max_images} images can be uploaded at once")

    uploaded = storage_service.upload_files(files, 'image')
    logging.info(f"{len(uploaded)} images uploaded by {auth.user_id}")
    return success(uploaded)


@uploads_bp.route('/video', methods=['POST'])
@with_auth
def upload_video(auth):
    storage_service = current_app.services['storage']
    file = request.files.get('video')
    if not file or not file.filename:
        raise BadRequestError("No video file provided in the 'video' field")

    uploaded = storage_service.upload_file(file, 'video')
    logging.info(f"Video uploaded by {auth.user_id}")
    return success(uploaded)


@uploads_bp.route('/<path:public_id>', methods=['GET'])
def get_file(public_id: str):
    storage_service = current_app.services['storage']
    return success(storage_service.get_file(public_id))


@uploads_bp.route('/<path:public_id>', methods=['DELETE'])
def delete_file(public_id: str):
    storage_service = current_app.services['storage']
    storage_service.delete_file(public_id)
    return success()
