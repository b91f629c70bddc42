import logging
import typing as tp

import httpx
import pytest
from inline_snapshot import snapshot

from revalidator import (
    BaseStorage,
    Revalidation,
    BadResponseError,
    Headers,
    Request,
    ResourceGoneError,
    Response,
    SpecificationPolicy,
    TransportFailure,
)

ETAG = '"v1"'
STORED_DATE = "Mon, 25 Aug 2015 12:00:00 GMT"
NEW_DATE = "Mon, 25 Aug 2015 13:00:00 GMT"


class RecordingStorage(BaseStorage):
    def __init__(self) -> None:
        self.stored: tp.List[tp.Tuple[Request, Response]] = []
        self.deleted: tp.List[Request] = []

    def store(self, request: Request, response: Response) -> None:
        self.stored.append((request, response))

    def delete(self, request: Request) -> None:
        self.deleted.append(request)

    def retrieve(self, request: Request) -> tp.Optional[Response]:
        return None


class Origin:
    """Request sender that answers with a queued outcome and records what it was sent."""

    def __init__(self, outcome: tp.Union[Response, Exception]) -> None:
        self.outcome = outcome
        self.requests: tp.List[Request] = []

    def __call__(self, request: Request) -> Response:
        self.requests.append(request)
        if isinstance(self.outcome, Exception):
            raise self.outcome
        if self.outcome.status_code >= 400:
            raise BadResponseError("error status", request=request, response=self.outcome)
        return self.outcome


def stored_response() -> Response:
    return Response(
        200,
        headers=Headers({"etag": ETAG, "date": STORED_DATE, "cache-control": "no-cache", "content-type": "text/plain"}),
    )


def original_request() -> Request:
    return Request(method="GET", url="https://example.com/resource", headers=Headers({"cache-control": "no-cache"}))



def test_not_modified_refreshes_the_stored_response():
    storage = RecordingStorage()
    origin = Origin(Response(304, headers=Headers({"etag": ETAG, "date": NEW_DATE, "last-modified": NEW_DATE})))
    revalidation = Revalidation(storage=storage, request_sender=origin)
    request, response = original_request(), stored_response()

    assert revalidation.revalidate(request, response) is True

    assert response.headers["date"] == NEW_DATE
    assert response.headers["last-modified"] == NEW_DATE
    assert response.headers["content-type"] == "text/plain"
    assert storage.stored == [(request, response)]
    assert storage.deleted == []
    assert request.response is None
    assert response.metadata["revalidator_stored"] is True



def test_not_modified_without_refreshable_headers_is_not_stored():
    storage = RecordingStorage()
    origin = Origin(Response(304, headers=Headers({"server": "nginx"})))
    revalidation = Revalidation(storage=storage, request_sender=origin)
    response = Response(200, headers=Headers({"date": STORED_DATE, "cache-control": "no-cache"}))

    assert revalidation.revalidate(original_request(), response) is True

    assert storage.stored == []
    assert response.headers == Headers({"date": STORED_DATE, "cache-control": "no-cache"})



def test_not_modified_refresh_that_is_not_cacheable():
    storage = RecordingStorage()
    origin = Origin(Response(304, headers=Headers({"etag": ETAG, "cache-control": "no-store"})))
    revalidation = Revalidation(storage=storage, request_sender=origin)
    response = stored_response()

    assert revalidation.revalidate(original_request(), response) is True

    assert response.headers["cache-control"] == "no-store"
    assert storage.stored == []
    assert response.metadata["revalidator_stored"] is False



def test_not_modified_with_another_etag():
    storage = RecordingStorage()
    origin = Origin(Response(304, headers=Headers({"etag": '"v2"', "date": NEW_DATE})))
    revalidation = Revalidation(storage=storage, request_sender=origin)
    response = stored_response()

    assert revalidation.revalidate(original_request(), response) is False

    assert response.headers["date"] == STORED_DATE
    assert storage.stored == []
    assert storage.deleted == []



def test_not_modified_without_etag_is_not_trusted():
    storage = RecordingStorage()
    origin = Origin(Response(304, headers=Headers({"date": NEW_DATE})))
    revalidation = Revalidation(storage=storage, request_sender=origin)
    response = stored_response()

    assert revalidation.revalidate(original_request(), response) is False

    assert response.headers["date"] == STORED_DATE
    assert storage.stored == []
    assert storage.deleted == []



def test_ok_replaces_the_stored_response():
    storage = RecordingStorage()
    new_response = Response(200, headers=Headers({"etag": '"v2"', "cache-control": "max-age=60"}))
    revalidation = Revalidation(storage=storage, request_sender=Origin(new_response))
    request = original_request()

    assert revalidation.revalidate(request, stored_response()) is False

    assert request.response is new_response
    assert storage.stored == [(request, new_response)]
    assert new_response.metadata["revalidator_stored"] is True



def test_ok_that_is_not_cacheable():
    storage = RecordingStorage()
    new_response = Response(200, headers=Headers({"cache-control": "no-store"}))
    revalidation = Revalidation(storage=storage, request_sender=Origin(new_response))
    request = original_request()

    assert revalidation.revalidate(request, stored_response()) is False

    assert request.response is new_response
    assert storage.stored == []
    assert new_response.metadata["revalidator_stored"] is False



def test_not_found_deletes_the_entry():
    storage = RecordingStorage()
    gone = Response(404)
    revalidation = Revalidation(storage=storage, request_sender=Origin(gone))
    request = original_request()

    with pytest.raises(ResourceGoneError) as exc_info:
        revalidation.revalidate(request, stored_response())

    assert storage.deleted == [request]
    assert storage.stored == []
    assert exc_info.value.response is gone
    assert exc_info.value.status_code == 404
    assert isinstance(exc_info.value.__cause__, BadResponseError)



def test_other_error_statuses_keep_the_entry():
    storage = RecordingStorage()
    revalidation = Revalidation(storage=storage, request_sender=Origin(Response(503)))
    request = original_request()

    assert revalidation.revalidate(request, stored_response()) is False

    assert storage.deleted == []
    assert storage.stored == []
    assert request.response is None



def test_unexpected_status_code():
    storage = RecordingStorage()
    revalidation = Revalidation(storage=storage, request_sender=Origin(Response(302)))

    assert revalidation.revalidate(original_request(), stored_response()) is False

    assert storage.stored == []



@pytest.mark.parametrize(
    "failure",
    [
        httpx.ConnectError("connection refused"),
        httpx.ReadTimeout("timed out"),
        httpx.DecodingError("incorrect header check"),
        TransportFailure("unreachable"),
    ],
)
def test_transport_failures_are_not_fatal(failure: Exception, caplog: pytest.LogCaptureFixture):
    storage = RecordingStorage()
    revalidation = Revalidation(storage=storage, request_sender=Origin(failure))

    with caplog.at_level(logging.WARNING, logger="revalidator.revalidation"):
        assert revalidation.revalidate(original_request(), stored_response()) is False

    assert storage.stored == []
    assert storage.deleted == []
    assert caplog.messages == [
        f"Could not revalidate https://example.com/resource due to a transport failure: {failure!r}"
    ]



def test_other_exceptions_propagate():
    revalidation = Revalidation(storage=RecordingStorage(), request_sender=Origin(ValueError("bug")))

    with pytest.raises(ValueError, match="bug"):
        revalidation.revalidate(original_request(), stored_response())



def test_sent_request_is_conditional():
    origin = Origin(Response(304))
    revalidation = Revalidation(storage=RecordingStorage(), request_sender=origin)
    request = original_request()

    revalidation.revalidate(request, stored_response())

    [sent] = origin.requests
    assert sent is not request
    assert sent.headers["if-none-match"] == ETAG
    assert sent.headers["if-modified-since"] == STORED_DATE
    assert "cache-control" not in sent.headers
    assert sent.metadata == {"revalidator_bypass_cache": True}



def test_custom_policy_is_used():
    storage = RecordingStorage()

    class StoreNothing(SpecificationPolicy):
        def is_cacheable(self, response: Response) -> bool:
            return False

    new_response = Response(200, headers=Headers({"cache-control": "max-age=60"}))
    revalidation = Revalidation(storage=storage, request_sender=Origin(new_response), policy=StoreNothing())

    assert revalidation.revalidate(original_request(), stored_response()) is False
    assert storage.stored == []



def test_revalidation_is_logged(caplog: pytest.LogCaptureFixture):
    origin = Origin(Response(304, headers=Headers({"etag": ETAG})))
    revalidation = Revalidation(storage=RecordingStorage(), request_sender=origin)

    with caplog.at_level(logging.DEBUG, logger="revalidator.revalidation"):
        revalidation.revalidate(original_request(), stored_response())

    assert caplog.messages == snapshot(
        [
            "Storing the refreshed response for https://example.com/resource.",
            "Considering the stored response for https://example.com/resource as valid after revalidation.",
        ]
    )
