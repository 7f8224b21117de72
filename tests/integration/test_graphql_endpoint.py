import json

import pytest
from django.test import Client as DjangoClient

from test_app.models import Author, Book
from zoun_admin.testing import AdminGraphQLTestClient

pytestmark = [pytest.mark.integration, pytest.mark.django_db]

CREATE = """
mutation Create($entity: String!, $data: GenericScalar!) {
  createRecord(entity: $entity, data: $data) {
    ok
    record
    errors { code field message }
  }
}
"""

UPDATE = """
mutation Update($entity: String!, $pk: GenericScalar!, $data: GenericScalar!, $version: GenericScalar) {
  updateRecord(entity: $entity, pk: $pk, data: $data, expectedVersion: $version) {
    ok
    record
    errors { code field message }
  }
}
"""

DELETE = """
mutation Delete($entity: String!, $pk: GenericScalar!) {
  deleteRecord(entity: $entity, pk: $pk) {
    ok
    deleted
    errors { code field message }
  }
}
"""

LIST = """
query List($entity: String!, $query: GenericScalar) {
  listRecords(entity: $entity, query: $query) {
    ok
    page { items total offset limit hasNext }
    errors { code field message }
  }
}
"""


@pytest.fixture
def gql_client():
    return AdminGraphQLTestClient()


def _create(client, entity, data):
    result = client.execute(CREATE, variables={"entity": entity, "data": data})
    assert result.get("errors") is None
    return result["data"]["createRecord"]


def test_entities_query_lists_metadata(gql_client):
    result = gql_client.execute(
        """
        query {
          entities { name primaryKey }
          entity(name: "Book") {
            label
            pluralLabel
            fields { name type required editable label }
            relationships { name kind target owning cascade fetch }
          }
        }
        """
    )

    assert result.get("errors") is None
    names = {item["name"] for item in result["data"]["entities"]}
    assert {"Author", "Book", "Post"} <= names
    book = result["data"]["entity"]
    assert book["pluralLabel"] == "Books"
    fields = {field["name"]: field for field in book["fields"]}
    assert fields["id"]["editable"] is False
    assert fields["isbn"]["label"] == "ISBN"
    assert fields["title"]["type"] == "string"
    assert book["relationships"] == [
        {
            "name": "author",
            "kind": "many_to_one",
            "target": "Author",
            "owning": True,
            "cascade": "none",
            "fetch": "eager",
        }
    ]


def test_unknown_entity_metadata_is_null(gql_client):
    result = gql_client.execute('query { entity(name: "Spaceship") { name } }')

    assert result["data"]["entity"] is None


def test_create_list_and_read(gql_client):
    author = _create(gql_client, "Author", {"name": "Ted Chiang"})
    assert author["ok"] is True
    author_pk = author["record"]["pk"]

    book = _create(
        gql_client,
        "Book",
        {"title": "Exhalation", "isbn": "9781101947883", "author": author_pk, "published": "2019-05-07"},
    )
    assert book["ok"] is True
    assert book["record"]["values"]["published"] == "2019-05-07"
    assert book["record"]["related"]["author"]["values"]["name"] == "Ted Chiang"

    listed = gql_client.execute(
        LIST, variables={"entity": "Book", "query": {"filters": [{"field": "title", "op": "startswith", "value": "Ex"}]}}
    )["data"]["listRecords"]
    assert listed["ok"] is True
    assert listed["page"]["total"] == 1
    assert listed["page"]["limit"] == 20

    read = gql_client.execute(
        "query Read($pk: GenericScalar!) { record(entity: \"Book\", pk: $pk) { ok record } }",
        variables={"pk": book["record"]["pk"]},
    )["data"]["record"]
    assert read["ok"] is True
    assert read["record"]["values"]["title"] == "Exhalation"


def test_validation_errors_are_returned_per_field(gql_client):
    author = Author.objects.create(name="N. K. Jemisin")
    Book.objects.create(title="The Fifth Season", isbn="9780316229296", author=author)

    payload = _create(
        gql_client,
        "Book",
        {"title": "Copy", "isbn": "9780316229296", "author": author.pk, "pages": -1},
    )

    assert payload["ok"] is False
    assert payload["record"] is None
    errors = {(error["field"], error["code"]) for error in payload["errors"]}
    assert errors == {("isbn", "VALIDATION_ERROR"), ("pages", "VALIDATION_ERROR")}
    isbn_error = next(e for e in payload["errors"] if e["field"] == "isbn")
    assert "not unique" in isbn_error["message"]
    assert Book.objects.count() == 1


def test_unique_together_error_has_no_field(gql_client):
    _create(gql_client, "Shelf", {"code": "A", "row": 1})

    payload = _create(gql_client, "Shelf", {"code": "A", "row": 1})

    assert payload["ok"] is False
    assert payload["errors"][0]["field"] is None


def test_invalid_query_is_reported(gql_client):
    listed = gql_client.execute(
        LIST, variables={"entity": "Book", "query": {"filters": [{"field": "nope", "value": 1}]}}
    )["data"]["listRecords"]

    assert listed["ok"] is False
    assert listed["errors"][0]["code"] == "INVALID_QUERY"
    assert listed["errors"][0]["field"] == "nope"


def test_update_with_version(gql_client):
    document = _create(gql_client, "Document", {"title": "Draft"})
    pk = document["record"]["pk"]

    updated = gql_client.execute(
        UPDATE, variables={"entity": "Document", "pk": pk, "data": {"title": "Final"}, "version": 0}
    )["data"]["updateRecord"]
    assert updated["ok"] is True
    assert updated["record"]["values"]["version"] == 1

    stale = gql_client.execute(
        UPDATE, variables={"entity": "Document", "pk": pk, "data": {"title": "Late"}, "version": 0}
    )["data"]["updateRecord"]
    assert stale["ok"] is False
    assert stale["errors"][0]["code"] == "CONCURRENT_MODIFICATION"


def test_update_missing_record(gql_client):
    payload = gql_client.execute(
        UPDATE, variables={"entity": "Book", "pk": 31337, "data": {"title": "x"}}
    )["data"]["updateRecord"]

    assert payload["ok"] is False
    assert payload["errors"][0]["code"] == "NOT_FOUND"


def test_protected_delete_is_refused(gql_client):
    author = Author.objects.create(name="Becky Chambers")
    Book.objects.create(title="A Psalm for the Wild-Built", isbn="9781250236210", author=author)

    payload = gql_client.execute(DELETE, variables={"entity": "Author", "pk": author.pk})[
        "data"
    ]["deleteRecord"]

    assert payload["ok"] is False
    assert payload["deleted"] == 0
    assert payload["errors"][0]["code"] == "INTEGRITY_ERROR"
    assert Author.objects.filter(pk=author.pk).exists()


def test_delete_record(gql_client):
    tag = _create(gql_client, "Tag", {"name": "novella"})

    payload = gql_client.execute(DELETE, variables={"entity": "Tag", "pk": tag["record"]["pk"]})[
        "data"
    ]["deleteRecord"]

    assert payload == {"ok": True, "deleted": 1, "errors": []}


def test_relationship_and_options_queries(gql_client):
    author = Author.objects.create(name="Ann Leckie")
    for index in range(2):
        Book.objects.create(title=f"Ancillary {index}", isbn=f"anc-{index}", author=author)

    result = gql_client.execute(
        """
        query Rel($pk: GenericScalar!) {
          relationship(entity: "Author", pk: $pk, name: "books") {
            ok
            record
            page { total items }
          }
          relationshipOptions(entity: "Book", name: "author") {
            ok
            page { total }
          }
        }
        """,
        variables={"pk": author.pk},
    )

    assert result.get("errors") is None
    relationship = result["data"]["relationship"]
    assert relationship["ok"] is True
    assert relationship["record"] is None
    assert relationship["page"]["total"] == 2
    assert result["data"]["relationshipOptions"]["page"]["total"] == 1


def test_http_endpoint():
    client = DjangoClient()

    response = client.post(
        "/graphql/",
        data=json.dumps({"query": "query { entities { name } }"}),
        content_type="application/json",
    )

    assert response.status_code == 200
    body = response.json()
    assert "errors" not in body
    assert any(item["name"] == "Book" for item in body["data"]["entities"])
