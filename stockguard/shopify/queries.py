"""GraphQL documents for the Shopify Admin API."""

from __future__ import annotations

import json

_QUANTITIES = 'quantities(names: ["on_hand", "available", "committed", "incoming"]) { name quantity }'

VARIANT_WITH_LEVELS = f"""
query VariantWithLevels($id: ID!) {{
  productVariant(id: $id) {{
    id
    sku
    product {{ id }}
    inventoryItem {{
      id
      tracked
      inventoryLevels(first: 100) {{
        edges {{
          node {{
            location {{ id }}
            {_QUANTITIES}
          }}
        }}
      }}
    }}
  }}
}}
"""

INVENTORY_LEVEL = f"""
query InventoryLevel($itemId: ID!, $locationId: ID!) {{
  inventoryItem(id: $itemId) {{
    id
    tracked
    inventoryLevel(locationId: $locationId) {{
      location {{ id }}
      {_QUANTITIES}
    }}
  }}
}}
"""

PRODUCTS_VARIANT_IDS = """
query ProductsVariantIds($first: Int!, $cursor: String) {
  products(first: $first, after: $cursor) {
    pageInfo { hasNextPage endCursor }
    edges {
      node {
        id
        variants(first: 100) {
          edges { node { id sku } }
        }
      }
    }
  }
}
"""

LOCATION_NAME = """
query LocationName($id: ID!) {
  location(id: $id) { id name }
}
"""

INVENTORY_SET_ON_HAND = """
mutation SetOnHand($input: InventorySetOnHandQuantitiesInput!) {
  inventorySetOnHandQuantities(input: $input) {
    userErrors { field message }
    inventoryAdjustmentGroup {
      createdAt
      reason
      changes { name delta }
    }
  }
}
"""

BULK_RUN = """
mutation BulkRun($query: String!) {
  bulkOperationRunQuery(query: $query) {
    bulkOperation { id status }
    userErrors { field message }
  }
}
"""

BULK_STATUS = """
query {
  currentBulkOperation {
    id
    status
    errorCode
    createdAt
    completedAt
    objectCount
    fileSize
    url
  }
}
"""

BULK_CANCEL = """
mutation BulkCancel($id: ID!) {
  bulkOperationCancel(id: $id) {
    bulkOperation { id status }
    userErrors { field message }
  }
}
"""


def _search_arg(search: str | None) -> str:
    return f"(query: {json.dumps(search)})" if search else ""


def build_bulk_query(mode: str = "inventory_items", search: str | None = None) -> str:
    """Bulk export query in one of two shapes.

    ``inventory_items`` enumerates inventory items and their levels;
    ``product_variants`` walks products -> variants -> levels, where level
    lines point at their variant through ``__parentId``. ``search``
    is passed through as Shopify's ``query:`` filter on the root connection.
    """
    if mode == "product_variants":
        return f"""
{{
  products{_search_arg(search)} {{
    edges {{
      node {{
        id
        variants {{
          edges {{
            node {{
              id
              sku
              inventoryItem {{
                id
                tracked
                inventoryLevels {{
                  edges {{
                    node {{
                      location {{ id }}
                      {_QUANTITIES}
                    }}
                  }}
                }}
              }}
            }}
          }}
        }}
      }}
    }}
  }}
}}
"""
    if mode != "inventory_items":
        raise ValueError(f"unknown bulk mode: {mode}")
    return f"""
{{
  inventoryItems{_search_arg(search)} {{
    edges {{
      node {{
        id
        tracked
        sku
        variant {{ id product {{ id }} }}
        inventoryLevels {{
          edges {{
            node {{
              location {{ id }}
              {_QUANTITIES}
            }}
          }}
        }}
      }}
    }}
  }}
}}
"""
