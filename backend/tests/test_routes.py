"""
A+ Marketplace Backend — API Route Tests
==========================================

What:  End-to-end tests of the HTTP surface: auth guard, error envelope,
       multipart uploads, purchases, downloads, payouts and notifications.
How:   httpx.AsyncClient over ASGITransport against a fresh app whose
       session dependency is bound to the in-memory test database.

What we test:
    ✅ /health reports the gateway as unconfigured (degraded)
    ✅ Register → login → /me; 401 without a token, 403 for non-admins
    ✅ Note upload, catalog, detail, purchase, duplicate purchase, download
    ✅ Note documents are not served by the public files route
    ✅ Withdrawal request → accept → complete debits the balance
    ✅ Purchase notifications reach the seller
    ✅ Invalid form data uses the validation error envelope
    ✅ Every response carries X-Request-ID
"""

from decimal import Decimal

import pytest

IBAN = "SA0380000000608010167519"


async def _upload_note(client, headers, pdf_bytes, price="80.00"):
    return await client.post(
        "/api/v1/notes",
        headers=headers,
        data={
            "title": "Organic Chemistry Summary",
            "subject": "Chemistry",
            "price": price,
            "pages_number": "30",
            "year": "2024",
            "college": "Science",
            "university": "King Saud University",
        },
        files={"file": ("chemistry.pdf", pdf_bytes, "application/pdf")},
    )


class TestPlatform:

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "degraded"
        assert data["database"] == "connected"
        assert data["payment_gateway"] == "unconfigured"

    @pytest.mark.asyncio
    async def test_request_id_header(self, client):
        response = await client.get("/health")
        assert response.headers.get("X-Request-ID")

        echoed = await client.get("/health", headers={"X-Request-ID": "trace-42"})
        assert echoed.headers["X-Request-ID"] == "trace-42"


class TestAuthRoutes:

    @pytest.mark.asyncio
    async def test_register_login_me(self, client):
        register = await client.post(
            "/api/v1/users/register",
            json={"full_name": "Noura Student", "email": "Noura@Example.com", "password": "pa55word"},
        )
        assert register.status_code == 201
        assert register.json()["user"]["email"] == "noura@example.com"

        login = await client.post(
            "/api/v1/users/login",
            json={"email": "noura@example.com", "password": "pa55word"},
        )
        assert login.status_code == 200
        token = login.json()["access_token"]

        me = await client.get("/api/v1/users/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["full_name"] == "Noura Student"

    @pytest.mark.asyncio
    async def test_duplicate_registration(self, client):
        body = {"full_name": "Twice", "email": "twice@example.com", "password": "pa55word"}
        assert (await client.post("/api/v1/users/register", json=body)).status_code == 201
        response = await client.post("/api/v1/users/register", json=body)
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_missing_token(self, client):
        response = await client.get("/api/v1/users/me")
        assert response.status_code == 401
        body = response.json()
        assert body["error"] == "unauthorized"
        assert body["request_id"] == response.headers["X-Request-ID"]

    @pytest.mark.asyncio
    async def test_admin_only(self, client, auth_headers, buyer, admin):
        assert (await client.get("/api/v1/users", headers=auth_headers(buyer))).status_code == 403
        response = await client.get("/api/v1/users", headers=auth_headers(admin))
        assert response.status_code == 200
        assert response.json()["pagination"]["total"] >= 2

    @pytest.mark.asyncio
    async def test_avatar_upload(self, client, auth_headers, buyer, temp_storage, sample_image_bytes):
        response = await client.post(
            "/api/v1/users/me/avatar",
            headers=auth_headers(buyer),
            files={"file": ("me.png", sample_image_bytes, "image/png")},
        )
        assert response.status_code == 200
        avatar = response.json()["avatar"]
        assert avatar.endswith(".png")

        public = await client.get(f"/api/v1/users/{buyer.id}/public")
        assert public.json()["avatar"] == avatar

        served = await client.get(avatar)
        assert served.status_code == 200
        assert served.content == sample_image_bytes

    @pytest.mark.asyncio
    async def test_avatar_requires_file(self, client, auth_headers, buyer):
        response = await client.post("/api/v1/users/me/avatar", headers=auth_headers(buyer))
        assert response.status_code == 400
        assert response.json()["details"]["code"] == "user.avatar_required"

    @pytest.mark.asyncio
    async def test_best_sellers(self, client, make_user):
        await make_user(full_name="No Sales Yet")
        top = await make_user(full_name="Top Seller", number_of_sales=12)
        await make_user(full_name="Runner Up", number_of_sales=4)

        response = await client.get("/api/v1/users/best-sellers")
        assert response.status_code == 200
        names = [u["full_name"] for u in response.json()]
        assert names == ["Top Seller", "Runner Up"]
        assert response.json()[0]["id"] == str(top.id)
        assert "balance" not in response.json()[0]


class TestNoteRoutes:

    @pytest.mark.asyncio
    async def test_upload_list_and_detail(self, client, auth_headers, seller, temp_storage, sample_pdf_bytes):
        created = await _upload_note(client, auth_headers(seller), sample_pdf_bytes)
        assert created.status_code == 201
        note = created.json()
        assert note["owner_id"] == str(seller.id)
        assert note["file_path"].endswith(".pdf")

        catalog = await client.get("/api/v1/notes", params={"title": "organic"})
        assert catalog.status_code == 200
        assert [n["id"] for n in catalog.json()["notes"]] == [note["id"]]

        detail = await client.get(f"/api/v1/notes/{note['id']}")
        assert detail.status_code == 200
        assert detail.json()["owner"]["full_name"] == "Sara Seller"
        assert detail.json()["likes_count"] == 0
        assert detail.json()["purchased_by"] == []

    @pytest.mark.asyncio
    async def test_upload_requires_document(self, client, auth_headers, seller):
        response = await client.post(
            "/api/v1/notes",
            headers=auth_headers(seller),
            data={
                "title": "No file",
                "subject": "Chemistry",
                "price": "10",
                "pages_number": "3",
                "year": "2024",
                "college": "Science",
                "university": "KSU",
            },
        )
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_invalid_form_value(self, client, auth_headers, seller, temp_storage, sample_pdf_bytes):
        response = await _upload_note(client, auth_headers(seller), sample_pdf_bytes, price="-5")
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["details"]["field"] == "price"
        assert list(temp_storage.rglob("*.pdf")) == []

    @pytest.mark.asyncio
    async def test_purchase_and_download(
        self, client, auth_headers, seller, buyer, temp_storage, sample_pdf_bytes
    ):
        note = (await _upload_note(client, auth_headers(seller), sample_pdf_bytes, price="100.00")).json()

        forbidden = await client.get(f"/api/v1/notes/{note['id']}/download", headers=auth_headers(buyer))
        assert forbidden.status_code == 403

        purchase = await client.post(
            f"/api/v1/notes/{note['id']}/purchase",
            headers=auth_headers(buyer),
            json={"invoice_id": "inv_route_1"},
        )
        assert purchase.status_code == 201
        sale = purchase.json()
        assert Decimal(sale["amount"]) == Decimal("85.00")
        assert Decimal(sale["commission"]) == Decimal("15.00")
        assert sale["buyer_id"] == str(buyer.id)

        again = await client.post(
            f"/api/v1/notes/{note['id']}/purchase",
            headers=auth_headers(buyer),
            json={"invoice_id": "inv_route_2"},
        )
        assert again.status_code == 409

        detail = await client.get(f"/api/v1/notes/{note['id']}")
        assert detail.json()["purchased_by"] == [str(buyer.id)]

        download = await client.get(f"/api/v1/notes/{note['id']}/download", headers=auth_headers(buyer))
        assert download.status_code == 200
        assert download.content == sample_pdf_bytes
        assert download.headers["content-type"] == "application/pdf"

        me = await client.get("/api/v1/users/me", headers=auth_headers(seller))
        assert Decimal(me.json()["balance"]) == Decimal("85.00")

    @pytest.mark.asyncio
    async def test_self_purchase_rejected(self, client, auth_headers, seller, make_note):
        note = await make_note(seller)
        response = await client.post(
            f"/api/v1/notes/{note.id}/purchase",
            headers=auth_headers(seller),
            json={"invoice_id": "inv_self"},
        )
        assert response.status_code == 409
        assert response.json()["details"]["code"] == "note.self_purchase"

    @pytest.mark.asyncio
    async def test_purchase_for_another_buyer_needs_admin(self, client, auth_headers, seller, buyer, make_user, make_note):
        note = await make_note(seller)
        other = await make_user()
        response = await client.post(
            "/api/v1/purchase",
            headers=auth_headers(other),
            json={"note_id": str(note.id), "buyer_id": str(buyer.id), "invoice_id": "inv_x"},
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_documents_not_served_publicly(self, client, temp_storage):
        response = await client.get("/api/v1/files/2024/01/15/linear-algebra.pdf")
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_unknown_note(self, client):
        response = await client.get("/api/v1/notes/00000000-0000-0000-0000-000000000000")
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"


class TestWithdrawalRoutes:

    @pytest.mark.asyncio
    async def test_request_accept_complete(self, client, auth_headers, make_user, admin):
        seller = await make_user(full_name="Payout Seller", balance=Decimal("250.00"))

        created = await client.post(
            "/api/v1/withdrawals",
            headers=auth_headers(seller),
            json={"amount": "200.00", "account_name": "Payout Seller", "bank_name": "SNB", "iban": IBAN},
        )
        assert created.status_code == 201
        withdrawal_id = created.json()["id"]
        assert created.json()["status"] == "pending"

        assert (
            await client.post(f"/api/v1/withdrawals/{withdrawal_id}/accepted", headers=auth_headers(seller))
        ).status_code == 403

        accepted = await client.post(f"/api/v1/withdrawals/{withdrawal_id}/accepted", headers=auth_headers(admin))
        assert accepted.status_code == 200
        assert accepted.json()["status"] == "accepted"

        completed = await client.post(
            f"/api/v1/withdrawals/{withdrawal_id}/completed",
            headers=auth_headers(admin),
            json={"routing_number": "TRX-778", "routing_date": "2024-05-01T10:00:00Z"},
        )
        assert completed.status_code == 200
        assert completed.json()["status"] == "completed"
        assert completed.json()["routing_number"] == "TRX-778"

        rejected = await client.post(f"/api/v1/withdrawals/{withdrawal_id}/rejected", headers=auth_headers(admin))
        assert rejected.status_code == 409

        me = await client.get("/api/v1/users/me", headers=auth_headers(seller))
        assert Decimal(me.json()["balance"]) == Decimal("50.00")

    @pytest.mark.asyncio
    async def test_insufficient_balance(self, client, auth_headers, buyer):
        response = await client.post(
            "/api/v1/withdrawals",
            headers=auth_headers(buyer),
            json={"amount": "10.00", "account_name": "Bilal", "bank_name": "SNB", "iban": IBAN},
        )
        assert response.status_code == 409
        assert response.json()["details"]["code"] == "withdrawal.insufficient_balance"


class TestNotificationRoutes:

    @pytest.mark.asyncio
    async def test_seller_notified_of_sale(self, client, auth_headers, seller, buyer, make_note):
        note = await make_note(seller)
        purchase = await client.post(
            f"/api/v1/notes/{note.id}/purchase",
            headers=auth_headers(buyer),
            json={"invoice_id": "inv_notify"},
        )
        assert purchase.status_code == 201

        listing = await client.get("/api/v1/notifications", headers=auth_headers(seller))
        assert listing.status_code == 200
        assert listing.json()["unread_count"] == 1
        assert len(listing.json()["notifications"]) == 1

        read_all = await client.put("/api/v1/notifications/read-all", headers=auth_headers(seller))
        assert read_all.json()["updated"] == 1

        count = await client.get("/api/v1/notifications/unread-count", headers=auth_headers(seller))
        assert count.json() == {"unread_count": 0}
