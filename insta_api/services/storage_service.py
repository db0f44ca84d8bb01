# insta_api/services/storage_service.py
import logging
import mimetypes
import os
import uuid
from typing import Any, Dict, Iterable, List, Optional

from flask import Flask
from firebase_admin import storage
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from insta_api.core.errors import BadRequestError, NotFoundError, UpstreamError


class StorageService:
    """
    Upload proxy in front of the Firebase Storage bucket.

    File bytes are forwarded to the bucket under one folder namespace and every
    result is normalized to {public_id, url, type}, whatever the bucket returns.
    """

    def __init__(self, bucket=None):
        """
        The bucket is injected directly in tests; otherwise init_app resolves it
        from FIREBASE_STORAGE_BUCKET.
        """
        self.bucket = bucket
        self.root_folder = 'insta'
        self.allowed_formats = ('jpg', 'jpeg', 'png', 'gif', 'webp', 'pdf', 'mp4')

    def init_app(self, app: Flask):
        """
        Called once from create_app.

        :param app: Flask application
        """
        self.root_folder = app.config.get('UPLOAD_ROOT_FOLDER', self.root_folder)
        self.allowed_formats = tuple(app.config.get('UPLOAD_ALLOWED_FORMATS', self.allowed_formats))

        if self.bucket is None:
            bucket_name = app.config.get('FIREBASE_STORAGE_BUCKET')
            if not bucket_name:
                raise ValueError("FIREBASE_STORAGE_BUCKET must be set in .env or the config.")
            self.bucket = storage.bucket(bucket_name)
        logging.info("StorageService: Firebase Storage initialized.")

    def _ensure_bucket(self):
        if not self.bucket:
            raise RuntimeError("StorageService is not initialized. Call init_app first.")

    def _extension(self, file: FileStorage) -> str:
        filename = file.filename or ''
        if '.' in filename:
            return filename.rsplit('.', 1)[-1].lower()
        guessed = mimetypes.guess_extension(file.mimetype or '') or ''
        return guessed.lstrip('.').lower()

    def build_public_id(self, file: FileStorage) -> str:
        """Unique object path inside the folder namespace: <root>/<uuid>-<name>."""
        name = secure_filename(os.path.splitext(file.filename or '')[0]) or 'file'
        return f"{self.root_folder}/{uuid.uuid4()}-{name}.{self._extension(file)}"

    def _normalize(self, blob, media_type: str) -> Dict[str, Any]:
        return {
            "public_id": blob.name,
            "url": blob.public_url,
            "type": media_type,
        }

    def upload_file(self, file: FileStorage, media_type: str) -> Dict[str, Any]:
        """
        Forwards one file to the bucket and makes it publicly readable.

        :param file: uploaded file from request.files
        :param media_type: field the file came in on ("image" or "video")
        :return: {public_id, url, type}
        """
        self._ensure_bucket()

        extension = self._extension(file)
        if extension not in self.allowed_formats:
            raise BadRequestError(f"Unsupported file type .{extension}")

        public_id = self.build_public_id(file)
        try:
            blob = self.bucket.blob(public_id)
            blob.cache_control = 'public, max-age=31536000'
            blob.upload_from_file(file.stream, content_type=file.mimetype)
            blob.make_public()
            logging.info(f"File uploaded: {public_id}")
            return self._normalize(blob, media_type)
        except Exception as e:
            logging.error(f"Upload failed ({public_id}): {e}", exc_info=True)
            raise UpstreamError("Upload file failed")

    def upload_files(self, files: Iterable[FileStorage], media_type: str) -> List[Dict[str, Any]]:
        """
        Uploads every file, in order. If one of them fails, the ones already
        stored by this call are deleted before the error is raised.
        """
        uploaded = []
        try:
            for file in files:
                uploaded.append(self.upload_file(file, media_type))
        except Exception:
            for item in uploaded:
                try:
                    self.bucket.blob(item['public_id']).delete()
                except Exception as e:
                    logging.error(f"Cleanup of {item['public_id']} failed: {e}", exc_info=True)
            raise
        return uploaded

    def _check_public_id(self, public_id: str):
        """Only objects under the upload folder are reachable through this service."""
        parts = public_id.split('/')
        if not public_id.startswith(f"{self.root_folder}/") or '..' in parts or '' in parts[1:]:
            raise BadRequestError("Invalid file id")

    def get_file(self, public_id: str) -> Dict[str, Any]:
        """Looks up an uploaded object. A missing object surfaces as NotFoundError."""
        self._ensure_bucket()
        self._check_public_id(public_id)
        try:
            blob = self.bucket.get_blob(public_id)
        except Exception as e:
            logging.error(f"File lookup failed ({public_id}): {e}", exc_info=True)
            raise UpstreamError("Get file failed")

        if blob is None:
            raise NotFoundError("File not found!")
        return self._normalize(blob, self._media_type_of(blob.content_type))

    def delete_file(self, public_id: str) -> None:
        self._ensure_bucket()
        self._check_public_id(public_id)
        try:
            blob = self.bucket.blob(public_id)
            exists = blob.exists()
            if exists:
                blob.delete()
        except Exception as e:
            logging.error(f"File deletion failed ({public_id}): {e}", exc_info=True)
            raise UpstreamError("Delete file failed")

        if not exists:
            raise NotFoundError("File not found!")
        logging.info(f"File deleted: {public_id}")

    @staticmethod
    def _media_type_of(content_type: Optional[str]) -> str:
        if content_type and content_type.startswith('video/'):
            return 'video'
        return 'image'
