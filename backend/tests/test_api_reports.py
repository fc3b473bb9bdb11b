"""
Ponto Urbano Backend — Report API Tests
=========================================

What:  GET/POST /problemas and DELETE /problemas/{id}/foto through the real app.

What we test:
    ✅ register → login → submit → list round trip carries the owner's name
    ✅ Listing is newest first
    ✅ Unauthenticated or incomplete submissions write no row and no file
    ✅ Photo removal: 404 for unknown ids, file and column cleared otherwise
"""

import pytest
from sqlalchemy import func, select

from pontourbano.models.report import Report

FORM = {
    "tipo": "Buraco",
    "descricao": "Buraco grande na pista",
    "data": "2024-05-01",
    "latitude": "-23.55052",
    "longitude": "-46.633308",
    "categoria": "Vias",
}


async def _login(client, nome="Maria", email="maria@example.com"):
    await client.post("/cadastro", json={"nome": nome, "email": email, "senha": "segredo123"})
    response = await client.post("/login", json={"email": email, "senha": "segredo123"})
    assert response.status_code == 200
    return response.json()["user"]


async def _count_reports(container) -> int:
    async with container.database.session() as db:
        result = await db.execute(select(func.count()).select_from(Report))
        return result.scalar_one()


def _stored_files(container, folder="problemas"):
    root = container.local_storage.storage_root / folder
    return [p for p in root.rglob("*") if p.is_file()] if root.exists() else []


class TestListing:

    @pytest.mark.asyncio
    async def test_empty_list(self, client):
        response = await client.get("/problemas")
        assert response.status_code == 200
        assert response.json() == []

    @pytest.mark.asyncio
    async def test_newest_first(self, client):
        await _login(client)
        created = []
        for tipo in ("Buraco", "Lâmpada queimada", "Lixo"):
            response = await client.post("/problemas", data=dict(FORM, tipo=tipo))
            created.append(response.json()["id"])

        listed = (await client.get("/problemas")).json()
        assert [r["id"] for r in listed] == list(reversed(created))


class TestSubmission:

    @pytest.mark.asyncio
    async def test_round_trip_with_photo(self, client, container, sample_image_bytes):
        user = await _login(client)

        response = await client.post(
            "/problemas",
            data=FORM,
            files={"foto": ("buraco.png", sample_image_bytes, "image/png")},
        )
        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Problema registrado com sucesso"
        assert body["foto"].startswith("uploads/problemas/")

        listed = (await client.get("/problemas")).json()
        assert len(listed) == 1
        report = listed[0]
        assert report["id"] == body["id"]
        assert report["tipo"] == "Buraco"
        assert report["data"] == "2024-05-01"
        assert report["latitude"] == pytest.approx(-23.55052)
        assert report["longitude"] == pytest.approx(-46.633308)
        assert report["foto"] == body["foto"]
        assert report["usuario_id"] == user["id"]
        assert report["usuario_nome"] == "Maria"

        served = await client.get(f"/{body['foto']}")
        assert served.status_code == 200

    @pytest.mark.asyncio
    async def test_without_photo(self, client):
        await _login(client)
        response = await client.post("/problemas", data=FORM)
        assert response.status_code == 201
        assert response.json()["foto"] is None

    @pytest.mark.asyncio
    async def test_unauthenticated_submission_writes_nothing(self, client, container, sample_image_bytes):
        response = await client.post(
            "/problemas",
            data=FORM,
            files={"foto": ("buraco.png", sample_image_bytes, "image/png")},
        )

        assert response.status_code == 401
        assert response.json()["message"] == "Não autorizado. Faça login primeiro."
        assert await _count_reports(container) == 0
        assert _stored_files(container) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("missing", ["tipo", "data", "latitude", "categoria"])
    async def test_incomplete_submission_writes_nothing(self, client, container, sample_image_bytes, missing):
        await _login(client)
        data = {k: v for k, v in FORM.items() if k != missing}

        response = await client.post(
            "/problemas",
            data=data,
            files={"foto": ("buraco.png", sample_image_bytes, "image/png")},
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Todos os campos são obrigatórios"
        assert await _count_reports(container) == 0
        assert _stored_files(container) == []

    @pytest.mark.asyncio
    async def test_out_of_range_latitude_rejected(self, client, container):
        await _login(client)
        response = await client.post("/problemas", data=dict(FORM, latitude="123.4"))
        assert response.status_code == 400
        assert await _count_reports(container) == 0

    @pytest.mark.asyncio
    async def test_non_image_photo_rejected(self, client, container):
        await _login(client)
        response = await client.post(
            "/problemas",
            data=FORM,
            files={"foto": ("virus.exe", b"MZ\x90\x00", "application/x-msdownload")},
        )
        assert response.status_code == 400
        assert await _count_reports(container) == 0

    @pytest.mark.asyncio
    async def test_empty_file_input_means_no_photo(self, client):
        """Browsers send an empty part for an untouched file input."""
        await _login(client)
        response = await client.post(
            "/problemas",
            data=FORM,
            files={"foto": ("", b"", "application/octet-stream")},
        )
        assert response.status_code == 201
        assert response.json()["foto"] is None


class TestPhotoRemoval:

    @pytest.mark.asyncio
    async def test_requires_session(self, client):
        response = await client.delete("/problemas/1/foto")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_unknown_report_is_not_found(self, client, container):
        await _login(client)
        response = await client.delete("/problemas/999/foto")

        assert response.status_code == 404
        assert response.json()["message"] == "Problema não encontrado"
        assert await _count_reports(container) == 0

    @pytest.mark.asyncio
    async def test_removes_file_and_clears_column(self, client, container, sample_image_bytes):
        await _login(client)
        created = (await client.post(
            "/problemas",
            data=FORM,
            files={"foto": ("buraco.png", sample_image_bytes, "image/png")},
        )).json()
        assert len(_stored_files(container)) == 1

        response = await client.delete(f"/problemas/{created['id']}/foto")

        assert response.status_code == 200
        assert response.json()["message"] == "Foto removida com sucesso"
        assert _stored_files(container) == []
        listed = (await client.get("/problemas")).json()
        assert listed[0]["foto"] is None
        assert (await client.get(f"/{created['foto']}")).status_code == 404
