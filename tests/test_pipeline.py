"""End-to-end tests for the partitioning pipeline."""

import pytest

from partition_pipeline.analyzer import GroupAnalyzer
from partition_pipeline.config import MaterializeConfig, PartitionConfig
from partition_pipeline.errors import InternalConsistencyError, UnsplittableGroupError
from partition_pipeline.pipeline import AnnotationPartitionPipeline
from partition_pipeline.report import group_record, log_groups
from partition_pipeline.types import CaptionRecord, Group, TagRecord


def test_three_caption_scenario(three_captions):
    pipeline = AnnotationPartitionPipeline(
        partition_config=PartitionConfig(max_group_size=2, random_state=0)
    )

    results = pipeline.run_from_captions(three_captions)

    assert results.mode == "captions"
    assert results.vocabulary.weights == pytest.approx({
        "a": 0.0, "red": 1 / 3, "cat": 2 / 3, "dog": 2 / 3, "blue": 2 / 3, "bird": 2 / 3,
    })
    assert sorted(sorted(g.item_ids) for g in results.groups) == [["item1", "item2"], ["item3"]]
    red_group = next(g for g in results.groups if "item1" in g.item_ids)
    assert red_group.labels == {"a", "red", "cat", "dog"}


def test_caption_input_within_bound_is_one_group(three_captions):
    results = AnnotationPartitionPipeline().run_from_captions(three_captions)

    assert len(results.groups) == 1
    assert results.groups[0].item_ids == ["item1", "item2", "item3"]
    assert results.groups[0].group_id == 1


def test_caption_groups_cover_input():
    words = ["red", "blue", "green", "cat", "dog", "bird", "tree", "car", "sky", "sea"]
    records = [
        CaptionRecord(item_id=f"img{i}.jpg", caption=f"a {words[i % 10]} {words[(i * 3) % 10]} {i % 7}")
        for i in range(240)
    ]
    pipeline = AnnotationPartitionPipeline(
        partition_config=PartitionConfig(max_group_size=30, random_state=5, allow_oversized_groups=True)
    )

    results = pipeline.run_from_captions(records)

    assert sorted(results.assigned_item_ids) == sorted(r.item_id for r in records)
    assert results.item_count == 240


def test_caption_degenerate_input_raises():
    records = [CaptionRecord(item_id=f"{i}.jpg", caption="same words") for i in range(5)]
    pipeline = AnnotationPartitionPipeline(partition_config=PartitionConfig(max_group_size=2))

    with pytest.raises(UnsplittableGroupError):
        pipeline.run_from_captions(records)


def test_tag_scenario_drops_malformed_item(two_topic_tags):
    records = list(two_topic_tags) + [TagRecord(item_id="broken.jpg", tags=("cat:0.8",))]
    pipeline = AnnotationPartitionPipeline(partition_config=PartitionConfig(random_state=0))

    results = pipeline.run_from_tags(records)

    assert results.mode == "tags"
    assert results.item_count == 101
    assert results.dropped_item_ids == ["broken.jpg"]
    assert "broken.jpg" not in results.assigned_item_ids
    assert sorted(results.assigned_item_ids) == sorted(r.item_id for r in two_topic_tags)
    assert len(results.groups) == 2

    for group in results.groups:
        assert group.size == 50
        assert group.medoid in group.item_ids
        prefixes = {item_id.split("/")[0] for item_id in group.item_ids}
        assert len(prefixes) == 1
        if prefixes == {"animals"}:
            assert group.labels == {"cat", "fur"}
        else:
            assert group.labels == {"car", "wheel"}

    assert results.tag_counts == {"cat": 50, "fur": 50, "car": 50, "wheel": 50}
    assert results.assignment.n_clusters == 2


def test_tag_run_with_only_malformed_tags():
    records = [TagRecord(item_id="a.jpg", tags=("cat:0.8",))]
    results = AnnotationPartitionPipeline().run_from_tags(records)

    assert results.groups == []
    assert results.assignment is None
    assert results.dropped_item_ids == ["a.jpg"]


def test_tag_run_small_input_single_group():
    records = [
        TagRecord(item_id="a.jpg", tags=("(cat:0.8)", "(dog:0.2)")),
        TagRecord(item_id="b.jpg", tags=("(dog:1.0)",)),
    ]
    results = AnnotationPartitionPipeline(
        partition_config=PartitionConfig(random_state=3)
    ).run_from_tags(records)

    assert len(results.groups) == 1
    assert sorted(results.groups[0].item_ids) == ["a.jpg", "b.jpg"]
    assert results.groups[0].labels == {"cat", "dog"}


def test_tag_run_with_huge_score():
    records = [
        TagRecord(item_id="a.jpg", tags=("(cat:1" + "0" * 200 + ")", "(dog:1.0)")),
        TagRecord(item_id="b.jpg", tags=("(dog:1.0)",)),
    ]
    results = AnnotationPartitionPipeline(
        partition_config=PartitionConfig(random_state=0)
    ).run_from_tags(records)

    assert results.dropped_item_ids == []
    assert sorted(results.assigned_item_ids) == ["a.jpg", "b.jpg"]


def test_run_tags_from_files_and_materialize(tmp_path, write_lines):
    images = tmp_path / "images"
    images.mkdir()
    lines = []
    for i in range(4):
        image = images / f"{i}.jpg"
        image.write_bytes(b"x")
        lines.append(f"{i}\t{image}\t(cat:1.0),(fur:{i + 1})\tsafe")
    path = write_lines("tags.tsv", lines)

    out = tmp_path / "out"
    pipeline = AnnotationPartitionPipeline(
        partition_config=PartitionConfig(random_state=0),
        materialize_config=MaterializeConfig(output_dir=str(out))
    )

    results = pipeline.run_tags([path])

    group_id = results.groups[0].group_id
    assert sorted(p.name for p in (out / f"group_{group_id}").iterdir()) == ["0.jpg", "1.jpg", "2.jpg", "3.jpg"]
    assert results.materialize_report.copied == 4


def test_run_captions_from_files(write_lines):
    path = write_lines("captions.tsv", [
        "0\titem1\ta red cat",
        "1\titem2\ta red dog\tignored",
        "2\titem3\ta blue bird",
    ])
    results = AnnotationPartitionPipeline(
        partition_config=PartitionConfig(max_group_size=2, random_state=0)
    ).run_captions([path])

    assert sorted(sorted(g.item_ids) for g in results.groups) == [["item1", "item2"], ["item3"]]
    assert results.materialize_report is None


def test_verify_coverage_detects_duplicates_and_gaps():
    analyzer = GroupAnalyzer()
    analyzer.verify_coverage([Group(0, ["a", "b"]), Group(1, ["c"])], ["a", "b", "c"])

    with pytest.raises(InternalConsistencyError):
        analyzer.verify_coverage([Group(0, ["a", "b"]), Group(1, ["b"])], ["a", "b"])
    with pytest.raises(InternalConsistencyError):
        analyzer.verify_coverage([Group(0, ["a"])], ["a", "b"])


def test_group_records(three_captions):
    results = AnnotationPartitionPipeline(
        partition_config=PartitionConfig(max_group_size=2, random_state=0)
    ).run_from_captions(three_captions)

    records = log_groups(results)

    assert [r["idx"] for r in records] == [1, 2]
    assert sum(r["file_count"] for r in records) == 3
    assert "medoid" not in records[0]

    tag_record = group_record(1, Group(group_id=4, item_ids=["a"], labels={"z", "y"}, medoid="a"))
    assert tag_record["medoid"] == "a"
    assert tag_record["labels"] == ["y", "z"]
