"""Endpoint declarations for every marketplace resource.

Tag contracts:
- Order and Truck writes invalidate their type tag, the owner's ``My*`` list
  tag and, when an id is involved, the instance tag.
- Every other resource invalidates its own type tag plus, when an id is
  involved, its instance tag.
- Auth writes carry no bearer token and invalidate nothing.
- Location search results carry no tags and are kept 300 s after their last
  subscriber leaves.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from freightsync.api import RequestConfig, ResourceApi
from freightsync.refs import ref_id
from freightsync.tags import instance_tag, provided_tags, resource_tag

ORDER = "Order"
MY_ORDERS = "MyOrders"
TRUCK = "Truck"
MY_TRUCKS = "MyTrucks"
PROFILE = "Profile"
LOAD_TYPE = "LoadType"
LOAD_PACKAGE = "LoadPackage"
TRUCK_OPTION = "TruckOption"
TRUCK_LOAD_TYPE = "TruckLoadType"
TRUCK_PRICING_TYPE = "TruckPricingType"
LOCATION = "Location"
AUTH = "Auth"

LOCATION_KEEP_UNUSED_FOR = "300s"


def _unwrap_list(key: str) -> Callable[[Any], list[Any]]:
    """Pull the list out of ``{success, data: {<key>: [...]}}`` style bodies."""

    def transform(response: Any) -> list[Any]:
        if isinstance(response, list):
            return response
        if isinstance(response, dict):
            data = response.get("data")
            if response.get("success") and isinstance(data, dict) and data.get(key):
                return list(data[key])
            if isinstance(data, list):
                return data
        return []

    return transform


# =============================================================================
# Orders (cargo owners)
# =============================================================================

orders = ResourceApi(ORDER, "/orders", tag_types=(ORDER, MY_ORDERS))


def _order_write_tags(id: str | None = None) -> list[str]:
    tags = [resource_tag(ORDER), resource_tag(MY_ORDERS)]
    if id is not None:
        tags.append(instance_tag(ORDER, id))
    return tags


@orders.query
def get_all_orders() -> RequestConfig:
    return RequestConfig(path="/", provides=[resource_tag(ORDER)])


@orders.query
def filter_orders(**filters: Any) -> RequestConfig:
    return RequestConfig(
        path="/filter",
        params=filters,
        provides=[resource_tag(ORDER)],
        transform=_unwrap_list("orders"),
    )


@orders.query
def get_order_by_id(id: str) -> RequestConfig:
    return RequestConfig(path=f"/{id}", provides=provided_tags(ORDER, id))


@orders.query
def get_my_orders() -> RequestConfig:
    return RequestConfig(path="/by-owner/me/list", provides=[resource_tag(MY_ORDERS)])


@orders.mutation
def create_order(body: dict[str, Any]) -> RequestConfig:
    return RequestConfig(path="/", method="POST", body=body, invalidates=_order_write_tags())


@orders.mutation
def update_order(id: str, updates: dict[str, Any]) -> RequestConfig:
    return RequestConfig(
        path=f"/{id}", method="PUT", body=updates, invalidates=_order_write_tags(id)
    )


@orders.mutation
def delete_order(id: str) -> RequestConfig:
    return RequestConfig(path=f"/{id}", method="DELETE", invalidates=_order_write_tags(id))


@orders.mutation
def update_order_status(id: str, status: str) -> RequestConfig:
    return RequestConfig(
        path=f"/{id}/status",
        method="PATCH",
        body={"status": status},
        invalidates=_order_write_tags(id),
    )


# =============================================================================
# Trucks (carriers)
# =============================================================================

trucks = ResourceApi(TRUCK, "/trucks", tag_types=(TRUCK, MY_TRUCKS))


def _truck_write_tags(id: str | None = None) -> list[str]:
    tags = [resource_tag(TRUCK), resource_tag(MY_TRUCKS)]
    if id is not None:
        tags.append(instance_tag(TRUCK, id))
    return tags


@trucks.query
def get_all_trucks() -> RequestConfig:
    return RequestConfig(path="/", provides=[resource_tag(TRUCK)])


@trucks.query
def filter_trucks(**filters: Any) -> RequestConfig:
    return RequestConfig(
        path="/filter",
        params=filters,
        provides=[resource_tag(TRUCK)],
        transform=_unwrap_list("trucks"),
    )


@trucks.query
def get_truck_by_id(id: str) -> RequestConfig:
    return RequestConfig(path=f"/{id}", provides=provided_tags(TRUCK, id))


@trucks.query
def get_my_trucks() -> RequestConfig:
    return RequestConfig(path="/owner/me", provides=[resource_tag(MY_TRUCKS)])


@trucks.mutation
def create_truck(body: dict[str, Any]) -> RequestConfig:
    return RequestConfig(path="/", method="POST", body=body, invalidates=_truck_write_tags())


@trucks.mutation
def update_truck(id: str, updates: dict[str, Any]) -> RequestConfig:
    return RequestConfig(
        path=f"/{id}", method="PUT", body=updates, invalidates=_truck_write_tags(id)
    )


@trucks.mutation
def delete_truck(id: str) -> RequestConfig:
    return RequestConfig(path=f"/{id}", method="DELETE", invalidates=_truck_write_tags(id))


@trucks.mutation
def update_truck_status(id: str, is_active: bool) -> RequestConfig:
    return RequestConfig(
        path=f"/{id}/status",
        method="PATCH",
        body={"isActive": is_active},
        invalidates=_truck_write_tags(id),
    )


# =============================================================================
# Reference data: same shape for every catalogue resource
# =============================================================================


def _catalogue(resource_type: str, base_path: str, noun: str, plural: str) -> ResourceApi:
    """Declare list/by-id/create/update/delete for a catalogue resource.

    ``noun``/``plural`` name the operations, e.g. ``get_load_types``,
    ``get_load_type_by_id``, ``create_load_type``.
    """
    api = ResourceApi(resource_type, base_path)

    def list_all() -> RequestConfig:
        return RequestConfig(path="/", provides=[resource_tag(resource_type)])

    def by_id(id: str) -> RequestConfig:
        return RequestConfig(path=f"/{id}", provides=provided_tags(resource_type, id))

    def create(body: dict[str, Any]) -> RequestConfig:
        return RequestConfig(
            path="/", method="POST", body=body, invalidates=[resource_tag(resource_type)]
        )

    def update(id: str, updates: dict[str, Any]) -> RequestConfig:
        return RequestConfig(
            path=f"/{id}",
            method="PUT",
            body=updates,
            invalidates=provided_tags(resource_type, id),
        )

    def delete(id: str) -> RequestConfig:
        return RequestConfig(
            path=f"/{id}", method="DELETE", invalidates=provided_tags(resource_type, id)
        )

    for fn, name in (
        (list_all, f"get_{plural}"),
        (by_id, f"get_{noun}_by_id"),
    ):
        fn.__name__ = fn.__qualname__ = name
        api.query(fn)
    for fn, name in (
        (create, f"create_{noun}"),
        (update, f"update_{noun}"),
        (delete, f"delete_{noun}"),
    ):
        fn.__name__ = fn.__qualname__ = name
        api.mutation(fn)
    return api


load_types = _catalogue(LOAD_TYPE, "/load-types", "load_type", "load_types")
load_packages = _catalogue(LOAD_PACKAGE, "/load-packages", "load_package", "load_packages")
truck_options = _catalogue(TRUCK_OPTION, "/truck-options", "truck_option", "truck_options")
truck_load_types = _catalogue(
    TRUCK_LOAD_TYPE, "/truck-load-types", "truck_load_type", "truck_load_types"
)
truck_pricing_types = _catalogue(
    TRUCK_PRICING_TYPE, "/truck-pricing-types", "truck_pricing_type", "truck_pricing_types"
)


@truck_options.query
def get_truck_options_by_parent(parent_id: str) -> RequestConfig:
    def provides(result: Any) -> list[str]:
        ids = [ref_id(option) for option in result or []]
        return [
            *provided_tags(TRUCK_OPTION, *(i for i in ids if i is not None)),
            instance_tag(TRUCK_OPTION, f"PARENT_{parent_id}"),
        ]

    return RequestConfig(path=f"/parent/{parent_id}", provides=provides)


# =============================================================================
# Profiles
# =============================================================================

profiles = ResourceApi(PROFILE, "/profiles")


@profiles.query
def get_my_profile() -> RequestConfig:
    return RequestConfig(path="/me", provides=[resource_tag(PROFILE)])


@profiles.query
def get_profile_by_user_id(user_id: str) -> RequestConfig:
    return RequestConfig(path=f"/{user_id}", provides=provided_tags(PROFILE, user_id))


@profiles.query
def search_exporters(
    country: str | None = None,
    company_name: str | None = None,
    limit: int | None = None,
    offset: int | None = None,
) -> RequestConfig:
    return RequestConfig(
        path="/search",
        params={
            "country": country,
            "companyName": company_name,
            "limit": limit,
            "offset": offset,
            "businessType": "cargo_owner",
            "type": "legal_entity",
        },
        provides=[resource_tag(PROFILE)],
    )


@profiles.mutation
def create_profile(body: dict[str, Any]) -> RequestConfig:
    return RequestConfig(path="/", method="POST", body=body, invalidates=[resource_tag(PROFILE)])


@profiles.mutation
def update_profile(profile_id: str, updates: dict[str, Any]) -> RequestConfig:
    return RequestConfig(
        path=f"/{profile_id}",
        method="PUT",
        body=updates,
        invalidates=provided_tags(PROFILE, profile_id),
    )


# =============================================================================
# Authentication (one-time passcode login)
# =============================================================================

auth = ResourceApi(AUTH, "/auth")


@auth.mutation
def send_otp(phone: str, language: str | None = None) -> RequestConfig:
    body = {"phone": phone}
    if language is not None:
        body["language"] = language
    return RequestConfig(path="/send-otp", method="POST", body=body, authenticated=False)


@auth.mutation
def verify_otp(phone: str, otp: str) -> RequestConfig:
    return RequestConfig(
        path="/verify-otp",
        method="POST",
        body={"phone": phone, "otp": otp},
        authenticated=False,
    )


# =============================================================================
# Location lookup
# =============================================================================

locations = ResourceApi(LOCATION, "")


@locations.query(keep_unused_for=LOCATION_KEEP_UNUSED_FOR)
def search_locations(query: str) -> RequestConfig:
    return RequestConfig(path="/search", params={"q": query})


ALL_APIS: tuple[ResourceApi, ...] = (
    orders,
    trucks,
    load_types,
    load_packages,
    truck_options,
    truck_load_types,
    truck_pricing_types,
    profiles,
    locations,
    auth,
)
