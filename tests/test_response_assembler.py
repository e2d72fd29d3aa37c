from models.contact import Contact, PRIMARY, SECONDARY
from services.response_assembler import assemble_contact_response


def make_contact(contact_id, email=None, phone=None, linked_id=None):
    return Contact(
        id=contact_id,
        email=email,
        phone_number=phone,
        linked_id=linked_id,
        link_precedence=SECONDARY if linked_id else PRIMARY
    )


def test_singleton_cluster():
    primary = make_contact(1, "a@x.com", "123")

    response = assemble_contact_response(primary, [])

    assert response.primaryContatctId == 1
    assert response.emails == ["a@x.com"]
    assert response.phoneNumbers == ["123"]
    assert response.secondaryContactIds == []


def test_primary_values_first_then_first_seen_order_without_duplicates():
    primary = make_contact(5, "z@x.com", "900")
    secondaries = [
        make_contact(7, "b@x.com", "900", linked_id=5),
        make_contact(6, "a@x.com", None, linked_id=5),
        make_contact(9, "b@x.com", "100", linked_id=5),
        make_contact(8, "z@x.com", "100", linked_id=5),
    ]

    response = assemble_contact_response(primary, secondaries)

    # Cluster order is kept, nothing is sorted
    assert response.emails == ["z@x.com", "b@x.com", "a@x.com"]
    assert response.phoneNumbers == ["900", "100"]
    assert response.secondaryContactIds == [7, 6, 9, 8]


def test_primary_without_email_lists_secondary_email_first():
    primary = make_contact(1, None, "123")
    secondaries = [make_contact(2, "a@x.com", "123", linked_id=1)]

    response = assemble_contact_response(primary, secondaries)

    assert response.emails == ["a@x.com"]
    assert response.phoneNumbers == ["123"]
    assert response.secondaryContactIds == [2]
