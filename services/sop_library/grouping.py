"""Derived, read-only groupings of a library snapshot."""

from shared.models.sop import UNCATEGORIZED, DocumentGroup, DocumentSubgroup, GroupingMode, SOPDocument


def _sort_key(document: SOPDocument) -> tuple[str, str]:
    return (document.pdf_name.casefold(), document.id)


def _group_key(document: SOPDocument, mode: GroupingMode) -> str:
    if mode == GroupingMode.FOLDER:
        return document.folder_id or ""
    return document.category_id or ""


def group_documents(
    documents: list[SOPDocument],
    mode: GroupingMode = GroupingMode.CATEGORY,
    labels: dict[str, str] | None = None,
) -> list[DocumentGroup]:
    """Group documents by category id (or folder id), then by subcategory.

    Documents without a subcategory land in the "Uncategorized" bucket; documents
    without a category (folder) id land in the group with the empty key. Groups,
    subgroups and documents are sorted, so the result only depends on the set of
    documents passed in, not on their order.

    Args:
        documents (list[SOPDocument]): The snapshot to group.
        mode (GroupingMode): Group by category or by folder.
        labels (dict[str, str] | None): Display names per group key.

    Returns:
        list[DocumentGroup]: The groups, sorted by key.
    """
    buckets: dict[str, dict[str, list[SOPDocument]]] = {}
    for document in sorted(documents, key=_sort_key):
        subcategory = (document.subcategory or "").strip() or UNCATEGORIZED
        buckets.setdefault(_group_key(document, mode), {}).setdefault(subcategory, []).append(document)

    labels = labels or {}
    return [
        DocumentGroup(
            key=key,
            label=labels.get(key),
            subgroups=[
                DocumentSubgroup(subcategory=subcategory, documents=docs)
                for subcategory, docs in sorted(subgroups.items())
            ],
        )
        for key, subgroups in sorted(buckets.items())
    ]
