"""Ticket endpoint tests: creation, visibility, update and deletion."""
import logging

from conftest import auth_headers

from helpdesk.models.models import ActivityLog, Comment, Ticket


class TestCreateTicket:
    def test_client_creates_ticket_with_defaults(self, client, db, client_user):
        resp = client.post(
            "/tickets",
            headers=auth_headers(client_user),
            json={"title": "VPN down", "description": "cannot connect"},
        )
        assert resp.status_code == 201
        data = resp.json()
        assert data["message"] == "Ticket successfully created"
        ticket = data["ticket"]
        assert ticket["status"] == "open"
        assert ticket["priority"] == "medium"
        assert ticket["created_by"] == client_user.id
        assert ticket["assigned_to"] is None

        rows = db.query(ActivityLog).all()
        assert len(rows) == 1
        assert rows[0].action == "created"
        assert rows[0].ticket_id == ticket["id"]
        assert rows[0].performed_by == client_user.id

    def test_title_and_description_are_trimmed(self, client, client_user):
        resp = client.post(
            "/tickets",
            headers=auth_headers(client_user),
            json={"title": "  Printer  ", "description": "  jammed \n"},
        )
        assert resp.status_code == 201
        assert resp.json()["ticket"]["title"] == "Printer"
        assert resp.json()["ticket"]["description"] == "jammed"

    def test_blank_title_rejected(self, client, db, client_user):
        resp = client.post(
            "/tickets",
            headers=auth_headers(client_user),
            json={"title": "   ", "description": "something"},
        )
        assert resp.status_code == 400
        assert resp.json() == {"message": "Title and description are required"}
        assert db.query(Ticket).count() == 0
        assert db.query(ActivityLog).count() == 0

    def test_unauthenticated_create_rejected(self, client, db):
        resp = client.post("/tickets", json={"title": "x", "description": "y"})
        assert resp.status_code == 401
        assert resp.json()["message"] == "No token provided"
        assert db.query(Ticket).count() == 0
        assert db.query(ActivityLog).count() == 0

    def test_assigned_to_must_exist(self, client, db, client_user):
        resp = client.post(
            "/tickets",
            headers=auth_headers(client_user),
            json={"title": "x", "description": "y", "assignedTo": 9999},
        )
        assert resp.status_code == 404
        assert resp.json()["message"] == "Assigned user not found"
        assert db.query(Ticket).count() == 0

    def test_assigned_to_with_bad_format(self, client, client_user):
        resp = client.post(
            "/tickets",
            headers=auth_headers(client_user),
            json={"title": "x", "description": "y", "assignedTo": "abc"},
        )
        assert resp.status_code == 400

    def test_create_with_assignee_and_due_date(self, client, client_user, technician):
        resp = client.post(
            "/tickets",
            headers=auth_headers(client_user),
            json={
                "title": "Laptop",
                "description": "won't boot",
                "priority": "high",
                "assignedTo": technician.id,
                "dueDate": "2026-11-01T09:00:00Z",
            },
        )
        assert resp.status_code == 201
        ticket = resp.json()["ticket"]
        assert ticket["assigned_to"] == technician.id
        assert ticket["priority"] == "high"
        assert ticket["due_date"].startswith("2026-11-01T09:00:00")

    def test_invalid_due_date_rejected(self, client, db, client_user):
        resp = client.post(
            "/tickets",
            headers=auth_headers(client_user),
            json={"title": "x", "description": "y", "dueDate": "next tuesday"},
        )
        assert resp.status_code == 400
        assert resp.json()["message"] == "Invalid due date format"
        assert db.query(Ticket).count() == 0

    def test_invalid_priority_rejected(self, client, client_user):
        resp = client.post(
            "/tickets",
            headers=auth_headers(client_user),
            json={"title": "x", "description": "y", "priority": "Urgent"},
        )
        assert resp.status_code == 400


class TestListAndGet:
    def _ticket(self, db, owner, assignee=None, title="t"):
        t = Ticket(
            title=title,
            description="d",
            created_by=owner.id,
            assigned_to=assignee.id if assignee else None,
        )
        db.add(t)
        db.commit()
        db.refresh(t)
        return t

    def test_visibility_scoped_by_role(
        self, client, db, admin, technician, client_user, other_client
    ):
        own = self._ticket(db, client_user, title="own")
        assigned = self._ticket(db, other_client, assignee=technician, title="assigned")
        tech_own = self._ticket(db, technician, title="tech-own")
        foreign = self._ticket(db, other_client, title="foreign")

        def ids(user):
            resp = client.get("/tickets", headers=auth_headers(user))
            assert resp.status_code == 200
            return {t["id"] for t in resp.json()["tickets"]}

        assert ids(admin) == {own.id, assigned.id, tech_own.id, foreign.id}
        assert ids(technician) == {assigned.id, tech_own.id}
        assert ids(client_user) == {own.id}

    def test_get_ticket_owner(self, client, client_user, sample_ticket):
        resp = client.get(f"/tickets/{sample_ticket.id}", headers=auth_headers(client_user))
        assert resp.status_code == 200
        assert resp.json()["ticket"]["title"] == "VPN down"

    def test_get_ticket_forbidden_for_stranger(self, client, other_client, sample_ticket):
        resp = client.get(f"/tickets/{sample_ticket.id}", headers=auth_headers(other_client))
        assert resp.status_code == 403

    def test_invalid_id_is_distinct_from_missing(self, client, admin):
        bad = client.get("/tickets/not-an-id", headers=auth_headers(admin))
        missing = client.get("/tickets/424242", headers=auth_headers(admin))
        assert bad.status_code == 400
        assert bad.json()["message"] == "Invalid ticket ID"
        assert missing.status_code == 404
        assert missing.json()["message"] == "Ticket not found"


class TestUpdateTicket:
    def test_owner_updates_only_supplied_fields(self, client, db, client_user, sample_ticket):
        resp = client.patch(
            f"/tickets/{sample_ticket.id}",
            headers=auth_headers(client_user),
            json={"priority": "high"},
        )
        assert resp.status_code == 200
        db.refresh(sample_ticket)
        assert sample_ticket.priority == "high"
        assert sample_ticket.title == "VPN down"
        assert sample_ticket.description == "cannot connect"

        entry = db.query(ActivityLog).filter(ActivityLog.action == "updated").one()
        assert entry.metadata_json == {"priority": {"from": "medium", "to": "high"}}

    def test_unassigned_technician_cannot_update(
        self, client, db, technician, sample_ticket
    ):
        resp = client.patch(
            f"/tickets/{sample_ticket.id}",
            headers=auth_headers(technician),
            json={"title": "hijacked", "status": "closed"},
        )
        assert resp.status_code == 403
        db.refresh(sample_ticket)
        assert sample_ticket.title == "VPN down"
        assert sample_ticket.status == "open"
        assert db.query(ActivityLog).count() == 0

    def test_assigned_technician_can_update(self, client, db, technician, sample_ticket):
        sample_ticket.assigned_to = technician.id
        db.commit()
        resp = client.patch(
            f"/tickets/{sample_ticket.id}",
            headers=auth_headers(technician),
            json={"status": "in_progress"},
        )
        assert resp.status_code == 200
        assert resp.json()["ticket"]["status"] == "in_progress"

    def test_invalid_status_transition_conflicts(self, client, db, admin, sample_ticket):
        resp = client.patch(
            f"/tickets/{sample_ticket.id}",
            headers=auth_headers(admin),
            json={"status": "reopened"},
        )
        assert resp.status_code == 409
        db.refresh(sample_ticket)
        assert sample_ticket.status == "open"

    def test_unknown_status_rejected(self, client, admin, sample_ticket):
        resp = client.patch(
            f"/tickets/{sample_ticket.id}",
            headers=auth_headers(admin),
            json={"status": "Open"},
        )
        assert resp.status_code == 400

    def test_created_by_never_changes(self, client, db, admin, client_user, sample_ticket):
        resp = client.patch(
            f"/tickets/{sample_ticket.id}",
            headers=auth_headers(admin),
            json={"title": "new", "created_by": admin.id, "createdBy": admin.id},
        )
        assert resp.status_code == 200
        db.refresh(sample_ticket)
        assert sample_ticket.created_by == client_user.id

    def test_noop_update_writes_no_entry(self, client, db, client_user, sample_ticket):
        resp = client.patch(
            f"/tickets/{sample_ticket.id}",
            headers=auth_headers(client_user),
            json={"title": "VPN down"},
        )
        assert resp.status_code == 200
        assert db.query(ActivityLog).count() == 0


class TestDeleteTicket:
    def test_owner_deletes_ticket_and_comments(
        self, client, db, client_user, sample_ticket
    ):
        db.add(Comment(content="hi", ticket_id=sample_ticket.id, user_id=client_user.id))
        db.commit()
        ticket_id = sample_ticket.id

        resp = client.delete(f"/tickets/{ticket_id}", headers=auth_headers(client_user))
        assert resp.status_code == 200
        assert db.query(Ticket).filter(Ticket.id == ticket_id).first() is None
        assert db.query(Comment).count() == 0

        entry = db.query(ActivityLog).one()
        assert entry.action == "deleted"
        assert entry.ticket_id == ticket_id
        assert entry.performed_by == client_user.id

    def test_stranger_cannot_delete(self, client, db, other_client, sample_ticket):
        resp = client.delete(
            f"/tickets/{sample_ticket.id}", headers=auth_headers(other_client)
        )
        assert resp.status_code == 403
        assert db.query(Ticket).count() == 1
        assert db.query(ActivityLog).count() == 0

    def test_ownership_denial_is_logged(self, client, caplog, other_client, sample_ticket):
        with caplog.at_level(logging.WARNING, logger="helpdesk.core.policy"):
            resp = client.delete(
                f"/tickets/{sample_ticket.id}", headers=auth_headers(other_client)
            )
        assert resp.status_code == 403
        messages = [r.getMessage() for r in caplog.records]
        assert any(
            f"user {other_client.id}" in m and "delete_ticket" in m for m in messages
        )

    def test_admin_deletes_any_ticket(self, client, db, admin, sample_ticket):
        resp = client.delete(f"/tickets/{sample_ticket.id}", headers=auth_headers(admin))
        assert resp.status_code == 200
        assert db.query(Ticket).count() == 0
