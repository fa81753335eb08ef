# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for upload storage.
"""

import io
import os
import pytest
from unittest.mock import patch
from werkzeug.datastructures import FileStorage
from werkzeug.exceptions import RequestEntityTooLarge

from utils.request import UploadStorage


def _file(name="photo.png", size=16, content_type="image/png"):
    return FileStorage(stream=io.BytesIO(b"x" * size), filename=name, content_type=content_type)


def _stored(folder):
    return os.listdir(folder) if os.path.isdir(folder) else []


class TestUploadStorage:

    @pytest.fixture
    def folder(self, tmp_path):
        return str(tmp_path / "uploads")

    def test_save_describes_each_file(self, folder):
        uploads = UploadStorage(folder, 1024).save([_file(), _file("clip.mp4", content_type="video/mp4")])

        assert [u["content_type"] for u in uploads] == ["image/png", "video/mp4"]
        assert uploads[0]["file_ref"].endswith("_photo.png")
        assert sorted(_stored(folder)) == sorted(u["file_ref"] for u in uploads)

    def test_empty_parts_are_skipped(self, folder):
        assert UploadStorage(folder).save([FileStorage(stream=io.BytesIO(b""), filename="")]) == []
        assert _stored(folder) == []

    def test_oversized_file_writes_nothing(self, folder):
        storage = UploadStorage(folder, 1024)
        files = [_file("small.png"), _file("big.mp4", size=15 * 1024, content_type="video/mp4")]

        with pytest.raises(RequestEntityTooLarge) as exc_info:
            storage.save(files)

        assert "big.mp4" in exc_info.value.description
        assert _stored(folder) == []

    def test_measure_keeps_stream_position(self):
        upload = _file(size=40)
        upload.stream.seek(5)
        assert UploadStorage.measure(upload) == 40
        assert upload.stream.tell() == 5

    def test_failed_write_removes_earlier_files(self, folder):
        real_save = FileStorage.save
        calls = []

        def save_then_fail(self, dst, *args, **kwargs):
            calls.append(dst)
            if len(calls) == 2:
                with open(dst, "wb") as partial:
                    partial.write(b"half")
                raise OSError("disk full")
            return real_save(self, dst, *args, **kwargs)

        with patch.object(FileStorage, "save", autospec=True, side_effect=save_then_fail):
            with pytest.raises(OSError):
                UploadStorage(folder).save([_file("a.png"), _file("b.png"), _file("c.png")])

        assert len(calls) == 2
        assert _stored(folder) == []

    def test_discard_ignores_missing_files(self, folder):
        storage = UploadStorage(folder)
        uploads = storage.save([_file()])
        storage.discard(uploads + [{"file_ref": "gone.png"}])
        assert _stored(folder) == []
