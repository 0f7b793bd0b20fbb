# profile_proxy/services/customers.py
from ..clients.shopify import graphql, mutation_block, to_gid
from ..errors import ValidationError
from ..utils.logger import info

NAMESPACE = "custom"

# (request field, metafield key, metafield type)
PROFILE_METAFIELDS = [
    ("alternate_phone", "alternate_phone", "single_line_text_field"),
    ("gender",          "gender",          "single_line_text_field"),
    ("date_of_birth",   "date_of_birth",   "date"),
]

# request field -> CustomerInput field
NATIVE_FIELDS = [
    ("first_name", "firstName"),
    ("last_name",  "lastName"),
    ("email",      "email"),
    ("phone",      "phone"),
]

CUSTOMER_FIELDS = """
    id
    firstName
    lastName
    email
    phone
    metafields(first: 25, namespace: "custom") {
      edges {
        node {
          key
          value
          type
          reference {
            ... on MediaImage { id image { url } }
            ... on GenericFile { id url }
          }
        }
      }
    }
"""

UPDATE_CUSTOMER = """
mutation updateCustomer($input: CustomerInput!) {
  customerUpdate(input: $input) {
    customer {%s}
    userErrors { field message }
  }
}
""" % CUSTOMER_FIELDS

GET_CUSTOMER = """
query getCustomer($id: ID!) {
  customer(id: $id) {%s}
}
""" % CUSTOMER_FIELDS


def _require_customer(customer_id):
    if not customer_id:
        raise ValidationError("Customer ID is required")

def build_metafields(body: dict) -> list[dict]:
    return [
        {"namespace": NAMESPACE, "key": key, "value": body[field], "type": type_}
        for field, key, type_ in PROFILE_METAFIELDS
        if body.get(field)
    ]

def _customer_update(store: dict, customer_input: dict) -> dict:
    block = mutation_block(graphql(store, UPDATE_CUSTOMER, {"input": customer_input}), "customerUpdate")
    return block.get("customer")

def update_customer(store: dict, body: dict) -> dict:
    customer_id = body.get("customer_id")
    _require_customer(customer_id)

    customer_input = {"id": to_gid("Customer", customer_id)}
    for field, gql_field in NATIVE_FIELDS:
        if body.get(field):
            customer_input[gql_field] = body[field]
    metafields = build_metafields(body)
    if metafields:
        customer_input["metafields"] = metafields

    info(f"[customers] update customer {customer_id}: {sorted(k for k in customer_input if k != 'id')}")
    return _customer_update(store, customer_input)

def update_profile(store: dict, body: dict):
    """Metafield-only update. Returns None when there is nothing to write."""
    customer_id = body.get("customer_id")
    _require_customer(customer_id)

    metafields = build_metafields(body)
    if not metafields:
        return None

    info(f"[customers] update profile {customer_id}: {[m['key'] for m in metafields]}")
    return _customer_update(store, {"id": to_gid("Customer", customer_id), "metafields": metafields})

def get_profile(store: dict, customer_id) -> dict:
    _require_customer(customer_id)
    data = graphql(store, GET_CUSTOMER, {"id": to_gid("Customer", customer_id)})
    return data.get("customer")
