from lessonlink.associations import AssociationModel, LineAssociation


def test_block_associations_keep_order_and_drop_repeats() -> None:
    model = AssociationModel()
    model.set_block_associations("b1", ["l2", "l1", "l2", ""])
    assert model.get_associated_lines("b1") == ("l2", "l1")
    assert model.has_block("b1")


def test_unknown_ids_resolve_to_empty() -> None:
    model = AssociationModel()
    assert model.get_associated_lines("nope") == ()
    assert model.get_line_association("nope") is None
    assert not model.has_line("nope")


def test_missing_association_is_stored_empty() -> None:
    model = AssociationModel()
    model.set_line_association("l1", None)
    association = model.get_line_association("l1")
    assert association == LineAssociation()


def test_consistency_issues_cover_both_directions() -> None:
    model = AssociationModel()
    model.set_block_associations("b1", ["l1", "l2", "ghost"])
    model.set_block_associations("b2", [])
    model.set_line_association("l1", LineAssociation(display_target_id="b1"))
    model.set_line_association("l2", LineAssociation(display_target_id="b2"))
    model.set_line_association("l3", LineAssociation(display_target_id="b9"))

    assert model.consistency_issues() == [
        "Line 'l2' targets block 'b2' which does not list it.",
        "Line 'l3' targets unknown block 'b9'.",
        "Block 'b1' lists line 'l2' which does not target it.",
        "Block 'b1' lists unknown line 'ghost'.",
    ]


def test_consistent_model_has_no_issues() -> None:
    model = AssociationModel()
    model.set_block_associations("b1", ["l1"])
    model.set_line_association("l1", LineAssociation(display_target_id="b1"))
    model.set_line_association("l2", None)
    assert model.consistency_issues() == []

    model.clear()
    assert not model.has_block("b1")
    assert not model.has_line("l1")
