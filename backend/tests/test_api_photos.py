"""
Tests d'intégration API pour les soumissions photo.
Testent POST/GET /api/v1/photos, GET/DELETE /api/v1/photos/{id},
      GET /api/v1/photos/{id}/image, POST /api/v1/photos/{id}/resubmit,
      GET/POST /api/v1/photos/{id}/comments, GET /api/v1/photos/{id}/history
"""

from unittest.mock import patch

from photoqc.errors import AccessDenied, Conflict, NotFound, StorageError, ValidationFailure
from photoqc.schemas.submission import SubmissionDetail, SubmissionHistory

from conftest import make_comment, make_submission_response


UPLOAD_FORM = {
    "route_id": "R1",
    "subsection_id": "S1",
    "checkpoint_id": "1",
    "execution_stage": "B",
    "photo_index": "1",
    "file_original_size": "2048",
    "file_last_modified": "1700000000000",
}
UPLOAD_FILE = {"file": ("IMG_0001.jpg", b"\xff\xd8\xff fake jpeg", "image/jpeg")}


# ============================================================
# POST /api/v1/photos
# ============================================================

def test_upload_photo_succes(client):
    """Upload valide → 201, le service reçoit un slot normalisé."""
    with patch("photoqc.routers.photos.lifecycle_service.submit_photo") as mock:
        mock.return_value = make_submission_response()

        response = client.post("/api/v1/photos", data=UPLOAD_FORM, files=UPLOAD_FILE)

    assert response.status_code == 201
    assert response.json()["status"] == "pending"

    _, _, identity, slot, content = mock.call_args.args
    assert identity.email == "reviewer@example.com"
    assert slot.execution_stage == "Before"
    assert content.fingerprint.file_original_size == 2048
    assert content.original_filename == "IMG_0001.jpg"
    assert content.location is None


def test_upload_photo_avec_localisation(client):
    form = {**UPLOAD_FORM, "latitude": "12.97", "longitude": "77.59", "location_accuracy": "5"}
    with patch("photoqc.routers.photos.lifecycle_service.submit_photo") as mock:
        mock.return_value = make_submission_response()
        response = client.post("/api/v1/photos", data=form, files=UPLOAD_FILE)

    assert response.status_code == 201
    content = mock.call_args.args[4]
    assert content.location.latitude == 12.97


def test_upload_photo_etape_invalide(client):
    """Étape inconnue → 422 sans appel au service."""
    with patch("photoqc.routers.photos.lifecycle_service.submit_photo") as mock:
        response = client.post(
            "/api/v1/photos", data={**UPLOAD_FORM, "execution_stage": "Pendant"}, files=UPLOAD_FILE,
        )

    assert response.status_code == 422
    mock.assert_not_called()


def test_upload_photo_empreinte_invalide(client):
    response = client.post(
        "/api/v1/photos", data={**UPLOAD_FORM, "file_original_size": "0"}, files=UPLOAD_FILE,
    )
    assert response.status_code == 422


def test_upload_photo_sans_fichier(client):
    response = client.post("/api/v1/photos", data=UPLOAD_FORM)
    assert response.status_code == 422


def test_upload_photo_doublon(client):
    """Conflict métier → 409 avec le type d'erreur."""
    with patch("photoqc.routers.photos.lifecycle_service.submit_photo") as mock:
        mock.side_effect = Conflict("Cette photo a déjà été soumise (route R1, sous-section S1).")
        response = client.post("/api/v1/photos", data=UPLOAD_FORM, files=UPLOAD_FILE)

    assert response.status_code == 409
    assert response.json() == {
        "detail": "Cette photo a déjà été soumise (route R1, sous-section S1).",
        "kind": "conflict",
    }


def test_upload_photo_acces_refuse(client):
    """Le motif réel n'est jamais renvoyé au client."""
    with patch("photoqc.routers.photos.lifecycle_service.submit_photo") as mock:
        mock.side_effect = AccessDenied("reviewer@example.com n'a pas accès à R1/S1")
        response = client.post("/api/v1/photos", data=UPLOAD_FORM, files=UPLOAD_FILE)

    assert response.status_code == 403
    assert response.json() == {"detail": "Accès refusé.", "kind": "authorization"}


def test_upload_photo_stockage_indisponible(client):
    with patch("photoqc.routers.photos.lifecycle_service.submit_photo") as mock:
        mock.side_effect = StorageError("put df-photos/x.jpg: Connection reset")
        response = client.post("/api/v1/photos", data=UPLOAD_FORM, files=UPLOAD_FILE)

    assert response.status_code == 502
    data = response.json()
    assert data["kind"] == "dependency"
    assert "Connection reset" not in data["detail"]


# ============================================================
# GET /api/v1/photos
# ============================================================

def test_list_photos_filtres_transmis(client):
    with patch("photoqc.routers.photos.submission_service.list_submissions") as mock:
        mock.return_value = [make_submission_response(id=2), make_submission_response(id=1)]

        response = client.get(
            "/api/v1/photos",
            params={"route_id": "R1", "status": ["pending", "nc"], "latest_only": "false", "limit": 10},
        )

    assert response.status_code == 200
    assert [p["id"] for p in response.json()] == [2, 1]
    kwargs = mock.call_args.kwargs
    assert kwargs["route_id"] == "R1"
    assert kwargs["statuses"] == ["pending", "nc"]
    assert kwargs["latest_only"] is False
    assert kwargs["limit"] == 10


def test_list_photos_limite_trop_grande(client):
    response = client.get("/api/v1/photos", params={"limit": 501})
    assert response.status_code == 422


def test_list_photos_statut_inconnu(client):
    with patch("photoqc.routers.photos.submission_service.list_submissions") as mock:
        mock.side_effect = ValidationFailure("Statut inconnu : bogus.")
        response = client.get("/api/v1/photos", params={"status": "bogus"})

    assert response.status_code == 400
    assert response.json()["kind"] == "validation"


# ============================================================
# GET /api/v1/photos/{id} + image
# ============================================================

def test_get_photo_avec_commentaires(client):
    with patch("photoqc.routers.photos.submission_service.get_submission_detail") as mock:
        mock.return_value = SubmissionDetail(
            **make_submission_response(status="nc").model_dump(),
            comments=[make_comment()],
        )
        response = client.get("/api/v1/photos/1")

    assert response.status_code == 200
    assert response.json()["comments"][0]["comment_text"] == "Photo floue"


def test_get_photo_introuvable(client):
    with patch("photoqc.routers.photos.submission_service.get_submission_detail") as mock:
        mock.side_effect = NotFound("Soumission 99 introuvable.")
        response = client.get("/api/v1/photos/99")

    assert response.status_code == 404
    assert response.json()["kind"] == "not_found"


def test_get_photo_image(client):
    with patch("photoqc.routers.photos.submission_service.get_submission_image") as mock:
        mock.return_value = (b"\xff\xd8\xff", "image/jpeg")
        response = client.get("/api/v1/photos/1/image")

    assert response.status_code == 200
    assert response.headers["content-type"] == "image/jpeg"
    assert response.content == b"\xff\xd8\xff"


# ============================================================
# DELETE /api/v1/photos/{id}
# ============================================================

def test_delete_photo(client):
    with patch("photoqc.routers.photos.lifecycle_service.delete_submission") as mock:
        response = client.delete("/api/v1/photos/5")

    assert response.status_code == 204
    assert mock.call_args.args[3] == 5


def test_delete_photo_approuvee(client):
    with patch("photoqc.routers.photos.lifecycle_service.delete_submission") as mock:
        mock.side_effect = Conflict("Impossible de supprimer une photo approuvée.")
        response = client.delete("/api/v1/photos/5")

    assert response.status_code == 409


# ============================================================
# POST /api/v1/photos/{id}/resubmit
# ============================================================

def test_resubmit_photo(client):
    form = {"comment": "Nouvelle prise", "file_original_size": "4096", "file_last_modified": "1700000000999"}
    with patch("photoqc.routers.photos.lifecycle_service.resubmit_photo") as mock:
        mock.return_value = make_submission_response(id=2, resubmission_of_id=1)
        response = client.post("/api/v1/photos/1/resubmit", data=form, files=UPLOAD_FILE)

    assert response.status_code == 201
    assert response.json()["resubmission_of_id"] == 1
    _, _, _, previous_id, content, comment = mock.call_args.args
    assert previous_id == 1
    assert content.fingerprint.file_original_size == 4096
    assert comment == "Nouvelle prise"


def test_resubmit_photo_sans_commentaire(client):
    form = {"file_original_size": "4096", "file_last_modified": "1700000000999"}
    response = client.post("/api/v1/photos/1/resubmit", data=form, files=UPLOAD_FILE)
    assert response.status_code == 422


# ============================================================
# Commentaires et historique
# ============================================================

def test_add_comment(client):
    with patch("photoqc.routers.photos.comment_service.add_comment") as mock:
        mock.return_value = make_comment(comment_text="Vu")
        response = client.post("/api/v1/photos/1/comments", json={"text": "  Vu  "})

    assert response.status_code == 201
    assert mock.call_args.args[2:] == (1, "Vu")


def test_add_comment_vide(client):
    response = client.post("/api/v1/photos/1/comments", json={"text": "   "})
    assert response.status_code == 422


def test_list_comments(client):
    with patch("photoqc.routers.photos.comment_service.list_comments") as mock:
        mock.return_value = [make_comment(id=1), make_comment(id=2, comment_text="Reprise")]
        response = client.get("/api/v1/photos/1/comments")

    assert response.status_code == 200
    assert [c["id"] for c in response.json()] == [1, 2]


def test_get_history(client):
    with patch("photoqc.routers.photos.history_service.get_history") as mock:
        mock.return_value = SubmissionHistory(
            history=[
                SubmissionDetail(**make_submission_response(id=1, status="nc").model_dump()),
                SubmissionDetail(**make_submission_response(id=2, resubmission_of_id=1).model_dump()),
            ],
            count=2,
        )
        response = client.get("/api/v1/photos/2/history")

    assert response.status_code == 200
    data = response.json()
    assert data["count"] == 2
    assert [h["id"] for h in data["history"]] == [1, 2]
