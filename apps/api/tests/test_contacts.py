from __future__ import annotations

import uuid

OTHER_ORG_ID = uuid.UUID("bbbbbbbb-bbbb-bbbb-bbbb-bbbbbbbbbbbb")


async def test_creator_creates_contact_and_audit_entry(call_action, contact_payload) -> None:
    response = await call_action("entities/create", contact_payload(), role="creator")

    assert response.status_code == 201
    body = response.json()
    assert body["ok"] is True
    contact_id = body["data"]["id"]
    assert uuid.UUID(contact_id)
    assert body["data"]["firstName"] == "Jordan"
    assert body["data"]["company"] == "Bright Path Advisors"
    assert body["data"]["recordEnteredBy"] == "Creator User"
    assert response.headers["cache-control"] == "no-store"

    audit = await call_action("audit/list", role="admin")
    entries = audit.json()["data"]
    created = [entry for entry in entries if entry["action"] == "contacts.create"]
    assert len(created) == 1
    assert created[0]["entityId"] == contact_id
    assert created[0]["entityType"] == "contact"
    assert created[0]["actorSubject"] == "creator-aaaaaaaa-aaaa-aaaa-aaaa-aaaaaaaaaaaa"


async def test_comment_added_after_create_is_listed_first(call_action, contact_payload) -> None:
    created = await call_action("entities/create", contact_payload(), role="creator")
    contact_id = created.json()["data"]["id"]

    first = await call_action("contact.addComment", {"contactId": contact_id, "body": "Met at expo"}, role="creator")
    second = await call_action(
        "contact.addComment", {"contactId": contact_id, "body": "Reach out Monday"}, role="creator"
    )
    assert first.status_code == 201
    assert second.status_code == 201

    detail = await call_action("contact.get", {"id": contact_id}, role="creator")
    comments = detail.json()["data"]["comments"]
    assert [comment["body"] for comment in comments] == ["Reach out Monday", "Met at expo"]
    assert comments[0]["archived"] is False
    assert comments[0]["authorDisplayName"] == "Creator User"


async def test_get_accepts_query_parameters(client, auth_headers, call_action, contact_payload) -> None:
    created = await call_action("contact.create", contact_payload())
    contact_id = created.json()["data"]["id"]

    response = await client.get(
        "/api", params={"action": "contact.get", "id": contact_id}, headers=auth_headers("participant")
    )

    assert response.status_code == 200
    assert response.json()["data"]["id"] == contact_id


async def test_contacts_are_invisible_across_organizations(call_action, contact_payload) -> None:
    created = await call_action("contact.create", contact_payload())
    contact_id = created.json()["data"]["id"]

    other_get = await call_action("contact.get", {"id": contact_id}, org_id=OTHER_ORG_ID)
    assert other_get.status_code == 404
    assert other_get.json()["error"]["code"] == "NOT_FOUND"

    other_list = await call_action("contact.list", org_id=OTHER_ORG_ID)
    assert other_list.json()["data"] == []

    other_delete = await call_action("contact.delete", {"id": contact_id}, org_id=OTHER_ORG_ID)
    assert other_delete.status_code == 404

    still_there = await call_action("contact.get", {"id": contact_id})
    assert still_there.status_code == 200


async def test_duplicate_with_accented_name_is_rejected(call_action, contact_payload) -> None:
    await call_action("contact.create", contact_payload(firstName="Élodie", lastName="Durand"))

    duplicate = await call_action("contact.create", contact_payload(firstName="Élodie", lastName="DURAND"))

    assert duplicate.status_code == 409
    assert duplicate.json()["error"]["code"] == "DUPLICATE_CONTACT"


async def test_duplicate_name_and_company_is_rejected(call_action, contact_payload) -> None:
    first = await call_action("contact.create", contact_payload())
    existing_id = first.json()["data"]["id"]

    duplicate = await call_action("contact.create", contact_payload(firstName="jordan", lastName="PRICE"))

    assert duplicate.status_code == 409
    body = duplicate.json()
    assert body["ok"] is False
    assert body["error"]["code"] == "DUPLICATE_CONTACT"
    assert body["meta"]["existingContactId"] == existing_id
    assert body["meta"]["existingContactName"] == "Jordan Price"
    assert body["meta"]["matchCount"] == 1


async def test_same_name_at_different_company_is_not_a_duplicate(call_action, contact_payload) -> None:
    await call_action("contact.create", contact_payload())

    response = await call_action("contact.create", contact_payload(company="Other Works"))

    assert response.status_code == 201


async def test_duplicate_linkedin_url_is_rejected(call_action, contact_payload) -> None:
    await call_action(
        "contact.create",
        contact_payload(linkedInProfileUrl="https://www.linkedin.com/in/jprice"),
    )

    response = await call_action(
        "contact.create",
        contact_payload(
            firstName="J",
            lastName="Price-Smith",
            company=None,
            linkedInProfileUrl=" HTTPS://www.linkedin.com/in/JPRICE ",
        ),
    )

    assert response.status_code == 409


async def test_allow_duplicate_bypasses_guard(call_action, contact_payload) -> None:
    await call_action("contact.create", contact_payload())

    response = await call_action("contact.create", contact_payload(allowDuplicate=True))

    assert response.status_code == 201
    listing = await call_action("contact.list")
    assert len(listing.json()["data"]) == 2


async def test_same_contact_in_other_org_is_not_a_duplicate(call_action, contact_payload) -> None:
    await call_action("contact.create", contact_payload())

    response = await call_action("contact.create", contact_payload(), org_id=OTHER_ORG_ID)

    assert response.status_code == 201


async def test_update_replaces_child_collections(call_action, contact_payload) -> None:
    created = await call_action(
        "contact.create",
        contact_payload(
            phones=[{"label": "Work", "value": "555-0100"}, {"label": "Cell", "value": "555-0101"}],
            emails=[{"value": "jordan@brightpath.example"}],
            websites=[{"label": "Site", "value": "https://brightpath.example"}, {"value": "   "}],
        ),
    )
    detail = created.json()["data"]
    assert {phone["value"] for phone in detail["phones"]} == {"555-0100", "555-0101"}
    assert len(detail["websites"]) == 1

    updated = await call_action(
        "contact.update",
        contact_payload(id=detail["id"], phones=[{"label": "Home", "value": "555-0199"}]),
    )

    assert updated.status_code == 200
    data = updated.json()["data"]
    assert [(phone["label"], phone["value"]) for phone in data["phones"]] == [("Home", "555-0199")]
    assert data["emails"] == []
    assert data["websites"] == []


async def test_update_overwrites_omitted_fields(call_action, contact_payload) -> None:
    created = await call_action(
        "contact.create",
        contact_payload(role="Principal", internalContact="Sam", attributes=["Startup", "Investor"]),
    )
    contact_id = created.json()["data"]["id"]

    updated = await call_action("contact.update", contact_payload(id=contact_id, status="Inactive"))

    data = updated.json()["data"]
    assert data["status"] == "Inactive"
    assert data["role"] is None
    assert data["internalContact"] is None
    assert data["attributes"] == []


async def test_update_missing_contact_is_not_found(call_action, contact_payload) -> None:
    response = await call_action("contact.update", contact_payload(id=str(uuid.uuid4())))

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


async def test_contact_cannot_refer_itself(call_action, contact_payload) -> None:
    created = await call_action("contact.create", contact_payload())
    contact_id = created.json()["data"]["id"]

    response = await call_action(
        "contact.update", contact_payload(id=contact_id, referredByContactId=contact_id)
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


async def test_referrer_must_belong_to_same_org(call_action, contact_payload) -> None:
    foreign = await call_action("contact.create", contact_payload(firstName="Alex"), org_id=OTHER_ORG_ID)
    foreign_id = foreign.json()["data"]["id"]

    response = await call_action("contact.create", contact_payload(referredByContactId=foreign_id))

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


async def test_detail_includes_referrals_and_referrer(call_action, contact_payload) -> None:
    referrer = await call_action("contact.create", contact_payload(firstName="Riley", lastName="Stone"))
    referrer_id = referrer.json()["data"]["id"]

    referred = await call_action(
        "contact.create",
        contact_payload(firstName="Casey", lastName="Brook", referredByContactId=referrer_id),
    )
    referred_data = referred.json()["data"]
    assert referred_data["referredByContact"] == {"id": referrer_id, "firstName": "Riley", "lastName": "Stone"}

    detail = await call_action("contact.get", {"id": referrer_id})
    referrals = detail.json()["data"]["referrals"]
    assert [item["id"] for item in referrals] == [referred_data["id"]]


async def test_linkedin_history_records_changes_only(call_action, contact_payload) -> None:
    created = await call_action(
        "contact.create",
        contact_payload(linkedInProfileUrl="https://www.linkedin.com/in/jprice", linkedInJobTitle="Partner"),
    )
    contact_id = created.json()["data"]["id"]
    assert len(created.json()["data"]["linkedInHistory"]) == 1

    unchanged = await call_action(
        "contact.update",
        contact_payload(
            id=contact_id,
            linkedInProfileUrl="https://www.linkedin.com/in/jprice",
            linkedInJobTitle="Partner",
        ),
    )
    assert len(unchanged.json()["data"]["linkedInHistory"]) == 1

    changed = await call_action(
        "contact.update",
        contact_payload(
            id=contact_id,
            linkedInProfileUrl="https://www.linkedin.com/in/jprice",
            linkedInJobTitle="Managing Partner",
        ),
    )
    history = changed.json()["data"]["linkedInHistory"]
    assert len(history) == 2
    assert history[0]["snapshot"]["jobTitle"] == "Managing Partner"


async def test_shipping_same_as_billing_copies_address(call_action, contact_payload) -> None:
    response = await call_action(
        "contact.create",
        contact_payload(
            billingAddressLine1="1 Main St",
            billingCity="Springfield",
            billingState="IL",
            billingZipCode="62701",
            shippingAddressLine1="ignored",
            shippingSameAsBilling=True,
        ),
    )

    data = response.json()["data"]
    assert data["shippingAddressLine1"] == "1 Main St"
    assert data["shippingCity"] == "Springfield"
    assert data["shippingZipCode"] == "62701"
    assert data["shippingSameAsBilling"] is True


async def test_delete_removes_contact_and_children(call_action, contact_payload) -> None:
    created = await call_action(
        "contact.create", contact_payload(phones=[{"value": "555-0100"}])
    )
    contact_id = created.json()["data"]["id"]
    await call_action("contact.addComment", {"contactId": contact_id, "body": "note"})

    deleted = await call_action("entities/delete", {"id": contact_id})

    assert deleted.status_code == 200
    assert deleted.json()["data"] == {"id": contact_id, "deleted": True}
    missing = await call_action("contact.get", {"id": contact_id})
    assert missing.status_code == 404
    audit = await call_action("audit.list")
    assert "contacts.delete" in [entry["action"] for entry in audit.json()["data"]]


async def test_list_is_sorted_and_reports_meta(call_action, contact_payload) -> None:
    for first, last in (("Zoe", "Adams"), ("Amy", "Zimmer"), ("Ben", "Adams")):
        await call_action("contact.create", contact_payload(firstName=first, lastName=last, company=None))

    response = await call_action("entities/list", role="participant")

    body = response.json()
    names = [(item["lastName"], item["firstName"]) for item in body["data"]]
    assert names == [("Adams", "Ben"), ("Adams", "Zoe"), ("Zimmer", "Amy")]
    assert body["meta"]["count"] == 3
    assert body["meta"]["limit"] == 200


async def test_search_matches_across_fields_and_children(call_action, contact_payload) -> None:
    jordan = await call_action(
        "contact.create",
        contact_payload(
            attributes=["Robotics"],
            emails=[{"label": "Work", "value": "jordan@brightpath.example"}],
        ),
    )
    jordan_id = jordan.json()["data"]["id"]
    other = await call_action(
        "contact.create",
        contact_payload(firstName="Taylor", lastName="Morgan", company="Harbor Fund", contactType="Funder"),
    )
    other_id = other.json()["data"]["id"]
    await call_action("contact.addComment", {"contactId": other_id, "body": "Interested in grant round"})

    async def search(term: str) -> list[str]:
        response = await call_action("contact.list", {"search": term})
        return [item["id"] for item in response.json()["data"]]

    assert await search("jordan price") == [jordan_id]
    assert await search("brightpath.example") == [jordan_id]
    assert await search("robotics") == [jordan_id]
    assert await search("grant round") == [other_id]
    assert await search("harbor") == [other_id]
    assert await search("100%") == []
    assert sorted(await search("   ")) == sorted([jordan_id, other_id])


async def test_search_ignores_deleted_comments(call_action, contact_payload) -> None:
    created = await call_action("contact.create", contact_payload())
    contact_id = created.json()["data"]["id"]
    comment = await call_action("contact.addComment", {"contactId": contact_id, "body": "secret handshake"})
    await call_action("contact.deleteComment", {"commentId": comment.json()["data"]["id"]})

    response = await call_action("contact.list", {"search": "handshake"})

    assert response.json()["data"] == []


async def test_invalid_contact_type_is_a_validation_error(call_action, contact_payload) -> None:
    response = await call_action("contact.create", contact_payload(contactType="Vendor"))

    assert response.status_code == 400
    body = response.json()
    assert body["error"]["code"] == "VALIDATION_ERROR"
    assert "contactType" in body["error"]["message"]


async def test_unknown_attribute_is_a_validation_error(call_action, contact_payload) -> None:
    response = await call_action("contact.create", contact_payload(attributes=["Space Travel"]))

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"
