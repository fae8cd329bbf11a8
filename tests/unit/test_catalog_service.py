from catering.catalog import service as catalog


def test_resolve_child_from_catalog():
    child = catalog.resolve_child("test-user", "c2")
    assert child == {"id": "c2", "name": "Sari", "class_name": "5B"}


def test_resolve_child_unknown_uses_placeholder():
    child = catalog.resolve_child("test-user", "c9")
    assert child["name"] == catalog.PLACEHOLDER_CHILD_NAME


def test_catalog_outage_degrades_without_fabricating_children(memory_store):
    memory_store.fail_on("query", "children")
    assert catalog.list_children_for_guardian("test-user") == []

    memory_store.fail_on("query", "children")
    assert catalog.resolve_child("test-user", "c1")["name"] == "Enfant"


def test_children_are_scoped_to_guardian():
    assert catalog.list_children_for_guardian("someone-else") == []
    assert [c["name"] for c in catalog.list_children_for_guardian("test-user")] == ["Budi", "Sari"]


def test_menu_items_map_and_names(memory_store):
    items = catalog.get_menu_items_map(i for i in ["m1", "m3"])
    assert set(items) == {"m1", "m3"}
    assert catalog.menu_item_name(items, "m1") == "Nasi Goreng"
    assert catalog.menu_item_name(items, "zz") == catalog.PLACEHOLDER_ITEM_NAME

    memory_store.fail_on("query", "menu_items")
    assert catalog.get_menu_items_map(["m1"]) == {}


def test_get_menu_items_carries_catalog_prices(memory_store):
    items = catalog.get_menu_items(["m2"])
    assert [(i["id"], i["price"]) for i in items] == [("m2", 20000)]

    memory_store.fail_on("query", "menu_items")
    assert catalog.get_menu_items(["m2"]) == []
