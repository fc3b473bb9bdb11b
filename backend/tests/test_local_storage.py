"""
Ponto Urbano Backend — Local Blob Storage Unit Tests
======================================================

What:  Tests for LocalBlobStorage: writes, references, deletes and path safety.
How:   Each test gets its own temporary storage root.

Test Strategy:
    ✅ Saved files land under <root>/<folder>/ with UUID names
    ✅ References are "uploads/<folder>/<file>" and resolve back to the file
    ✅ Deleting a missing file is not an error
    ✅ Path traversal is rejected
    ✅ Disk failures surface as UploadError (500)
"""

from pathlib import Path
from unittest.mock import patch

import pytest

from pontourbano.exceptions import UploadError, ValidationError
from pontourbano.services.local_storage import LocalBlobStorage


class TestLocalBlobStorage:

    @pytest.fixture(autouse=True)
    def _storage(self, temp_storage):
        self.root = Path(temp_storage).resolve()
        self.storage = LocalBlobStorage(temp_storage)

    # ── Save ──────────────────────────────────────────────────────────────

    @pytest.mark.asyncio
    async def test_save_writes_file_and_returns_reference(self, sample_image_bytes):
        reference = await self.storage.save(sample_image_bytes, ".png", folder="problemas")

        assert reference.startswith("uploads/problemas/")
        assert reference.endswith(".png")
        stored = self.root / reference[len("uploads/"):]
        assert stored.read_bytes() == sample_image_bytes

    @pytest.mark.asyncio
    async def test_save_generates_unique_names(self, sample_image_bytes):
        first = await self.storage.save(sample_image_bytes, ".png", folder="perfis")
        second = await self.storage.save(sample_image_bytes, ".png", folder="perfis")
        assert first != second

    @pytest.mark.asyncio
    async def test_save_disk_failure_raises_upload_error(self, sample_image_bytes):
        with patch("pontourbano.services.local_storage.aiofiles.open", side_effect=OSError("disk full")):
            with pytest.raises(UploadError) as exc_info:
                await self.storage.save(sample_image_bytes, ".png", folder="problemas")
        assert exc_info.value.status_code == 500

    # ── Ownership & Resolution ────────────────────────────────────────────

    def test_owns_only_local_references(self):
        assert self.storage.owns("uploads/problemas/a.jpg")
        assert not self.storage.owns("https://res.cloudinary.com/demo/image/upload/v1/a.jpg")

    def test_resolve_accepts_reference_or_relative_path(self):
        assert self.storage.resolve("uploads/perfis/a.png") == self.root / "perfis" / "a.png"
        assert self.storage.resolve("perfis/a.png") == self.root / "perfis" / "a.png"

    @pytest.mark.parametrize("path", ["../secret.txt", "uploads/../../secret.txt", "perfis/../../x"])
    def test_resolve_rejects_traversal(self, path):
        with pytest.raises(ValidationError):
            self.storage.resolve(path)

    # ── Delete ────────────────────────────────────────────────────────────

    @pytest.mark.asyncio
    async def test_delete_removes_file(self, sample_image_bytes):
        reference = await self.storage.save(sample_image_bytes, ".png", folder="problemas")
        await self.storage.delete(reference)
        assert not self.storage.resolve(reference).exists()

    @pytest.mark.asyncio
    async def test_delete_missing_file_is_noop(self):
        await self.storage.delete("uploads/problemas/nao-existe.jpg")

    @pytest.mark.asyncio
    async def test_discard_ignores_empty_reference(self):
        await self.storage.discard(None)
        await self.storage.discard("")

    @pytest.mark.asyncio
    async def test_discard_swallows_upload_errors(self, sample_image_bytes):
        reference = await self.storage.save(sample_image_bytes, ".png", folder="problemas")
        with patch("pontourbano.services.local_storage.os.remove", side_effect=PermissionError("denied")):
            await self.storage.discard(reference)
        # Still there: discard only logs
        assert self.storage.resolve(reference).exists()
