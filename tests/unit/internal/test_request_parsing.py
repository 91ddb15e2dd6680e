from __future__ import annotations

from typing import Annotated, Any

import pytest

from rtinject.exceptions import RTInjectInvalidRegistrationError
from rtinject.injector import Injector
from rtinject.markers import All, Arg, Maybe, Owned
from rtinject.request_info import RequestInfo
from rtinject.requests import (
    AllRequest,
    ArgRequest,
    FactoryRequest,
    InjectorRequest,
    MaybeRequest,
    RequestInfoRequest,
    ServicesRequest,
    SingleRequest,
    TupleRequest,
    parse_request,
)
from rtinject.service_info import ServiceInfo
from rtinject.services import Factory, Services


class ServiceA:
    pass


class ServiceB:
    pass


SERVICE_A = ServiceInfo.of(ServiceA)


def test_plain_class_is_a_single_request() -> None:
    assert parse_request(ServiceA) == SingleRequest(SERVICE_A)


def test_non_class_key_is_a_single_request() -> None:
    assert parse_request("primary-database") == SingleRequest(ServiceInfo.of("primary-database"))


def test_annotated_key_without_marker_is_its_own_identity() -> None:
    plan = parse_request(Annotated[ServiceA, "primary"])

    assert plan == SingleRequest(ServiceInfo.of(Annotated[ServiceA, "primary"]))
    assert plan != SingleRequest(SERVICE_A)


def test_injector_and_request_info_requests() -> None:
    assert parse_request(Injector) == InjectorRequest()
    assert parse_request(RequestInfo) == RequestInfoRequest()


def test_owned_request() -> None:
    assert parse_request(Owned[ServiceA]) == SingleRequest(SERVICE_A, owned=True)


def test_maybe_wraps_inner_plan() -> None:
    assert parse_request(Maybe[ServiceA]) == MaybeRequest(SingleRequest(SERVICE_A))


def test_maybe_of_owned() -> None:
    assert parse_request(Maybe[Owned[ServiceA]]) == MaybeRequest(
        SingleRequest(SERVICE_A, owned=True),
    )


def test_maybe_of_annotated_key_keeps_metadata() -> None:
    plan = parse_request(Maybe[Annotated[ServiceA, "primary"]])

    assert plan == MaybeRequest(SingleRequest(ServiceInfo.of(Annotated[ServiceA, "primary"])))


def test_all_and_owned_all() -> None:
    assert parse_request(All[ServiceA]) == AllRequest(SERVICE_A)
    assert parse_request(All[Owned[ServiceA]]) == AllRequest(SERVICE_A, owned=True)


def test_services_and_owned_services() -> None:
    assert parse_request(Services[ServiceA]) == ServicesRequest(SERVICE_A)
    assert parse_request(Services[Owned[ServiceA]]) == ServicesRequest(SERVICE_A, owned=True)


def test_arg_request_identity() -> None:
    plan = parse_request(Arg[int])

    assert isinstance(plan, ArgRequest)
    assert plan.argument == ServiceInfo.of(int)
    assert plan.service_info.name == "rtinject.Arg[int]"


def test_factory_request_keeps_inner_request() -> None:
    assert parse_request(Factory[Maybe[ServiceA]]) == FactoryRequest(Maybe[ServiceA])


def test_tuple_request_parses_each_element() -> None:
    assert parse_request(tuple[ServiceA, Maybe[ServiceB]]) == TupleRequest(
        (SingleRequest(SERVICE_A), MaybeRequest(SingleRequest(ServiceInfo.of(ServiceB)))),
    )


def test_empty_tuple_request() -> None:
    assert parse_request(tuple[()]) == TupleRequest(())


def test_plans_are_cached() -> None:
    assert parse_request(Maybe[ServiceA]) is parse_request(Maybe[ServiceA])


@pytest.mark.parametrize(
    "request_annotation",
    [
        pytest.param(Services, id="bare-services"),
        pytest.param(Factory, id="bare-factory"),
        pytest.param(tuple[ServiceA, ...], id="variadic-tuple"),
        pytest.param(Owned[Maybe[ServiceA]], id="owned-maybe"),
        pytest.param(All[Maybe[ServiceA]], id="all-maybe"),
        pytest.param(All[All[ServiceA]], id="all-all"),
        pytest.param(Services[Maybe[ServiceA]], id="services-maybe"),
        pytest.param(Arg[Owned[int]], id="arg-owned"),
        pytest.param(Factory[tuple[ServiceA, ...]], id="factory-variadic-tuple"),
    ],
)
def test_unsupported_shapes_are_rejected(request_annotation: Any) -> None:
    with pytest.raises(RTInjectInvalidRegistrationError):
        parse_request(request_annotation)
