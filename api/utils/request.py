# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request utilities for extracting and processing request data.
"""

from flask import request
from werkzeug.datastructures import FileStorage
from werkzeug.exceptions import RequestEntityTooLarge
from werkzeug.utils import secure_filename
from typing import Dict, Any, Optional, List
import os
import uuid
import logging

from domain.errors import ValidationError

logger = logging.getLogger(__name__)

REPORT_FORM_FIELDS = ("description", "category", "location", "latitude", "longitude")
MEDIA_FIELD = "mediaFiles"
DEFAULT_MAX_MEDIA_BYTES = 10 * 1024 * 1024


class RequestParser:
    """Utility for parsing and extracting request data."""

    @staticmethod
    def get_request_metadata() -> Dict[str, Any]:
        """
        Extract request metadata for logging.

        Returns:
            Dictionary with request metadata
        """
        return {
            'method': request.method,
            'path': request.path,
            'remote_addr': request.remote_addr,
            'user_agent': request.headers.get('User-Agent', ''),
            'content_type': request.content_type,
            'content_length': request.content_length
        }

    @staticmethod
    def parse_json_body(required: bool = False) -> Dict[str, Any]:
        """
        Parse a JSON object body.

        An absent or unreadable body yields an empty dict unless ``required``;
        the workflow operations report missing fields themselves.

        Raises:
            ValidationError: body required but missing, or not a JSON object
        """
        data = request.get_json(silent=True)
        if data is None:
            if required:
                raise ValidationError("Request body must be a JSON object")
            return {}
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")
        return data

    @staticmethod
    def get_text_field(name: str) -> Optional[str]:
        """Read a single text field from a JSON body."""
        value = RequestParser.parse_json_body().get(name)
        if value is not None and not isinstance(value, str):
            raise ValidationError(f"Field '{name}' must be a string")
        return value

    @staticmethod
    def get_report_form() -> Dict[str, Any]:
        """
        Collect the report fields of a submission.

        Multipart forms are the normal case; a JSON body is accepted too.
        """
        if request.is_json:
            source = RequestParser.parse_json_body()
        else:
            source = request.form
        return {name: source.get(name) for name in REPORT_FORM_FIELDS if source.get(name) is not None}


class UploadStorage:
    """Writes submitted media files to the upload folder."""

    def __init__(self, upload_folder: str, max_file_bytes: int = DEFAULT_MAX_MEDIA_BYTES):
        self.upload_folder = upload_folder
        self.max_file_bytes = max_file_bytes

    def build_file_ref(self, filename: Optional[str]) -> str:
        """Unique stored name that keeps the sanitized original suffix."""
        safe_name = secure_filename(filename or "") or "media"
        return f"{uuid.uuid4().hex}_{safe_name}"

    def save(self, files: List[FileStorage]) -> List[Dict[str, Any]]:
        """
        Persist uploaded files and describe them for media validation.

        Sizes are checked for every file before the first one is written, and
        a failed write removes the files already stored for this call.

        Returns:
            One ``{file_ref, content_type}`` dict per non-empty upload

        Raises:
            RequestEntityTooLarge: a file exceeds ``max_file_bytes``
        """
        files = [storage for storage in files or [] if storage and storage.filename]
        if not files:
            return []

        for storage in files:
            size = self.measure(storage)
            if size > self.max_file_bytes:
                raise RequestEntityTooLarge(
                    f"Media file {storage.filename!r} is {size} bytes; "
                    f"the limit is {self.max_file_bytes} bytes per file"
                )

        uploads = []
        os.makedirs(self.upload_folder, exist_ok=True)
        try:
            for storage in files:
                file_ref = self.build_file_ref(storage.filename)
                uploads.append({
                    "file_ref": file_ref,
                    "content_type": storage.mimetype
                })
                storage.save(os.path.join(self.upload_folder, file_ref))
        except Exception:
            logger.error(
                "Storing uploaded media failed",
                extra={"attempted_count": len(uploads), "file_count": len(files)},
                exc_info=True
            )
            self.discard(uploads)
            raise

        logger.debug("Stored uploaded media", extra={"file_count": len(uploads)})
        return uploads

    @staticmethod
    def measure(storage: FileStorage) -> int:
        """Size of an upload in bytes, leaving its stream where it was."""
        stream = storage.stream
        position = stream.tell()
        stream.seek(0, os.SEEK_END)
        size = stream.tell()
        stream.seek(position)
        return size

    def discard(self, uploads: List[Dict[str, Any]]) -> None:
        """Remove files stored for a submission that did not go through."""
        for upload in uploads:
            path = os.path.join(self.upload_folder, upload["file_ref"])
            try:
                os.remove(path)
            except FileNotFoundError:
                continue


def get_uploaded_files() -> List[FileStorage]:
    """Files sent under the media field of a multipart request."""
    return request.files.getlist(MEDIA_FIELD)
