import gc
import threading
import unittest
import weakref

from mutable_collection.changes import (
    ChangeOperation,
    DeepComposite,
    DeepInsert,
    DeepRemove,
    FlatComposite,
    FlatInsert,
    FlatRemove,
)
from mutable_collection.collection import ObservableCollection
from mutable_collection.config import CollectionConfig
from mutable_collection.diff import apply_changes
from mutable_collection.events import BaseCollectionEvent, DeepChangeEvent, FlatChangeEvent, ValueEvent
from mutable_collection.exceptions import (
    CollectionClosedError,
    ElementTypeMismatchError,
    EmptyPathError,
    IndexOutOfRangeError,
    NotASectionError,
    TypeMismatchError,
)
from mutable_collection.node import IndexedNode
from mutable_collection.streams import EventSink


def record(collection):
    """Subscribes to all three streams and returns the shared, ordered event log."""
    log = []
    collection.flat_changes.subscribe(lambda change: log.append(("flat", change)))
    collection.changes.subscribe(lambda change: log.append(("deep", change)))
    collection.value_stream.subscribe(lambda value: log.append(("value", value)))
    return log


class ListView:
    """A subscriber that keeps a reference to the collection it renders."""

    def __init__(self, collection, completions):
        self.collection = collection
        self.rendered = []
        self._completions = completions
        collection.changes.subscribe(self.on_change, on_completed=self.on_completed)

    def on_change(self, change):
        self.rendered.append(change)

    def on_completed(self):
        self._completions.append("completed")


class TestFlatOperations(unittest.TestCase):
    """Mutations of the root sequence."""

    def setUp(self):
        print(f"\n--- Running test: {self._testMethodName} ---")
        self.collection = ObservableCollection(["test1", "test2"])
        self.log = record(self.collection)

    def tearDown(self):
        self.collection.close()

    def assert_flat_mutation(self, flat_change, value):
        self.assertEqual(self.log, [
            ("flat", flat_change),
            ("deep", flat_change.to_deep()),
            ("value", value),
        ])

    def test_initial_value(self):
        """Test value, current_value and len of a fresh collection."""
        self.assertEqual(self.collection.value, ["test1", "test2"])
        self.assertEqual(self.collection.current_value(), ["test1", "test2"])
        self.assertEqual(len(self.collection), 2)
        self.assertEqual(self.log, [])

    def test_value_is_a_snapshot(self):
        """Test that the returned value is a detached list."""
        snapshot = self.collection.value
        snapshot.append("sneaky")
        self.assertEqual(self.collection.value, ["test1", "test2"])

    def test_set_value_publishes_diff_as_composite(self):
        """Test the composite published when assigning a new value."""
        collection = ObservableCollection(["test0", "test1", "test2", "test3"])
        changes = []
        collection.flat_changes.subscribe(changes.append)
        collection.value = ["test1", "test2-changed", "test3", "test4-new"]

        self.assertEqual(len(changes), 1)
        composite = changes[0]
        self.assertIsInstance(composite, FlatComposite)
        self.assertEqual([c.index for c in composite.changes], [0, 2, 1, 3])
        self.assertEqual([c.element for c in composite.changes], ["test0", "test2", "test2-changed", "test4-new"])
        self.assertEqual([c.operation for c in composite.changes], [
            ChangeOperation.REMOVAL, ChangeOperation.REMOVAL,
            ChangeOperation.INSERTION, ChangeOperation.INSERTION,
        ])
        self.assertEqual(collection.value, ["test1", "test2-changed", "test3", "test4-new"])

    def test_set_value_emits_change_before_value(self):
        """Test the event order of a wholesale assignment."""
        self.collection.set_value(["test2", "test3"])
        composite = FlatComposite([FlatRemove(0, "test1"), FlatInsert(1, "test3")])
        self.assert_flat_mutation(composite, ["test2", "test3"])

    def test_set_value_with_identical_content(self):
        """Test that assigning equal content publishes an empty composite."""
        self.collection.value = ["test1", "test2"]
        self.assert_flat_mutation(FlatComposite([]), ["test1", "test2"])

    def test_remove_at(self):
        """Test removing by index."""
        self.assertEqual(self.collection.remove_at(1), "test2")
        self.assert_flat_mutation(FlatRemove(1, "test2"), ["test1"])

    def test_remove_at_out_of_range(self):
        """Test that bad indices raise and publish nothing."""
        with self.assertRaises(IndexOutOfRangeError):
            self.collection.remove_at(2)
        with self.assertRaises(IndexOutOfRangeError):
            self.collection.remove_at(-1)
        self.assertEqual(self.log, [])

    def test_remove_last(self):
        """Test removing the last element."""
        self.assertEqual(self.collection.remove_last(), "test2")
        self.assert_flat_mutation(FlatRemove(1, "test2"), ["test1"])

    def test_remove_first(self):
        """Test removing the first element."""
        self.assertEqual(self.collection.remove_first(), "test1")
        self.assert_flat_mutation(FlatRemove(0, "test1"), ["test2"])

    def test_remove_first_and_last_on_empty_collection_do_nothing(self):
        """Test that removing from an empty collection is a silent no-op."""
        collection = ObservableCollection()
        log = record(collection)
        self.assertIsNone(collection.remove_first())
        self.assertIsNone(collection.remove_last())
        self.assertEqual(log, [])

    def test_remove_all(self):
        """Test the composite published when emptying the collection."""
        self.collection.remove_all()
        self.assert_flat_mutation(FlatComposite([FlatRemove(0, "test1"), FlatRemove(1, "test2")]), [])

    def test_remove_all_indices_run_left_to_right(self):
        """Test that remove_all lists indices 0 to n-1."""
        collection = ObservableCollection(list("abcde"))
        changes = []
        collection.flat_changes.subscribe(changes.append)
        collection.remove_all()
        self.assertEqual([c.index for c in changes[0].changes], [0, 1, 2, 3, 4])
        self.assertTrue(all(c.operation is ChangeOperation.REMOVAL for c in changes[0].changes))

    def test_append(self):
        """Test appending one element."""
        self.collection.append("test3")
        self.assert_flat_mutation(FlatInsert(2, "test3"), ["test1", "test2", "test3"])

    def test_append_all(self):
        """Test appending several elements as one composite."""
        self.collection.append_all(["test3", "test4"])
        self.assert_flat_mutation(
            FlatComposite([FlatInsert(2, "test3"), FlatInsert(3, "test4")]),
            ["test1", "test2", "test3", "test4"],
        )

    def test_insert_at(self):
        """Test inserting at the front."""
        self.collection.insert_at("test0", 0)
        self.assert_flat_mutation(FlatInsert(0, "test0"), ["test0", "test1", "test2"])

    def test_insert_at_end_and_out_of_range(self):
        """Test the valid and invalid insertion bounds."""
        self.collection.insert_at("end", 2)
        self.assertEqual(self.collection.value, ["test1", "test2", "end"])
        with self.assertRaises(IndexOutOfRangeError):
            self.collection.insert_at("nope", 4)
        with self.assertRaises(IndexOutOfRangeError):
            self.collection.insert_at("nope", -1)

    def test_replace_range(self):
        """Test that replacements list all removes before all inserts."""
        collection = ObservableCollection(["x", "y"])
        log = record(collection)
        collection.replace_range(range(0, 1), ["a", "b"])
        self.assertEqual(log[0], ("flat", FlatComposite([
            FlatRemove(0, "x"), FlatRemove(1, "y"), FlatInsert(0, "a"), FlatInsert(1, "b"),
        ])))
        self.assertEqual(collection.value, ["a", "b"])

    def test_replace_range_out_of_bounds_changes_nothing(self):
        """Test that invalid ranges raise before anything changes."""
        with self.assertRaises(IndexOutOfRangeError):
            self.collection.replace_range(range(1, 2), ["a", "b"])
        with self.assertRaises(IndexOutOfRangeError):
            self.collection.replace_range(range(0, 3), ["a"])
        with self.assertRaises(ValueError):
            self.collection.replace_range(range(0, 2, 2), ["a"])
        self.assertEqual(self.collection.value, ["test1", "test2"])
        self.assertEqual(self.log, [])

    def test_move(self):
        """Test the composite published by a flat move."""
        collection = ObservableCollection(["a", "b", "c"])
        log = record(collection)
        self.assertEqual(collection.move(0, 2), "a")
        self.assertEqual(log[0], ("flat", FlatComposite([FlatRemove(0, "a"), FlatInsert(2, "a")])))
        self.assertEqual(collection.value, ["b", "c", "a"])

    def test_flat_changes_replay_onto_previous_value(self):
        """Test that every flat change replays onto the previous value."""
        collection = ObservableCollection(list("abcdef"))
        previous = collection.value
        changes = []
        collection.flat_changes.subscribe(changes.append)
        operations = [
            lambda: collection.set_value(list("badcfx")),
            lambda: collection.move(1, 4),
            lambda: collection.replace_range(range(2, 4), ["q", "r"]),
            lambda: collection.append_all(["y", "z"]),
            lambda: collection.remove_at(3),
            lambda: collection.remove_all(),
        ]
        for operation in operations:
            operation()
            self.assertEqual(apply_changes(previous, changes[-1]), collection.value)
            previous = collection.value


class TestDeepOperations(unittest.TestCase):
    """Path-addressed mutations of nested nodes."""

    def setUp(self):
        print(f"\n--- Running test: {self._testMethodName} ---")

    def make(self, *items):
        collection = ObservableCollection([IndexedNode(list(items), element_type=str)])
        return collection, record(collection)

    def test_element_at_path(self):
        """Test reading nested elements with and without a type."""
        collection, _ = self.make("test1", "test2")
        self.assertEqual(collection.element_at_path([0, 1]), "test2")
        self.assertEqual(collection.element_at_path([0, 1], as_type=str), "test2")
        with self.assertRaises(TypeMismatchError):
            collection.element_at_path([0, 1], as_type=int)

    def test_remove_at_path(self):
        """Test removing a nested element."""
        collection, log = self.make("test1", "test2")
        self.assertEqual(collection.remove_at_path([0, 1]), "test2")
        self.assertEqual(log, [
            ("deep", DeepRemove((0, 1), "test2")),
            ("value", [IndexedNode(["test1"])]),
        ])

    def test_remove_whole_section_with_flat_operation(self):
        """Test removing a whole nested node with remove_at."""
        collection, log = self.make("test1", "test2")
        collection.remove_at(0)
        self.assertEqual(collection.value, [])
        self.assertEqual(log[0][0], "flat")

    def test_insert_at_path(self):
        """Test inserting into a nested node."""
        collection, log = self.make("test1", "test2")
        collection.insert_at_path("test0", [0, 0])
        self.assertEqual(log, [
            ("deep", DeepInsert((0, 0), "test0")),
            ("value", [IndexedNode(["test0", "test1", "test2"])]),
        ])

    def test_replace_at_path(self):
        """Test the remove/insert composite published by replace_at_path."""
        collection, log = self.make("test1", "test2")
        self.assertEqual(collection.replace_at_path("test0", [0, 0]), "test1")
        change = log[0][1]
        self.assertEqual([c.path for c in change.changes], [(0, 0), (0, 0)])
        self.assertEqual([c.element for c in change.changes], ["test1", "test0"])
        self.assertEqual([c.operation for c in change.changes], [ChangeOperation.REMOVAL, ChangeOperation.INSERTION])
        self.assertEqual(collection.value, [IndexedNode(["test0", "test2"])])

    def test_move_at_path(self):
        """Test moving an element inside a nested node."""
        collection, log = self.make("t1", "t2", "t3", "t4")
        self.assertEqual(collection.move_at_path([0, 1], [0, 2]), "t2")
        self.assertEqual(log, [
            ("deep", DeepComposite([DeepRemove((0, 1), "t2"), DeepInsert((0, 2), "t2")])),
            ("value", [IndexedNode(["t1", "t3", "t2", "t4"])]),
        ])
        self.assertEqual(collection.value[0].to_list(), ["t1", "t3", "t2", "t4"])

    def test_deep_operations_never_reach_flat_stream(self):
        """Test that path operations publish no flat changes."""
        collection, log = self.make("a")
        collection.insert_at_path("b", [0, 1])
        collection.replace_at_path("c", [0, 0])
        collection.move_at_path([0, 0], [0, 1])
        collection.remove_at_path([0, 0])
        self.assertNotIn("flat", [kind for kind, _ in log])

    def test_empty_path_is_rejected_everywhere(self):
        """Test that every path operation rejects an empty path."""
        collection, log = self.make("a")
        operations = [
            lambda: collection.insert_at_path("x", []),
            lambda: collection.remove_at_path([]),
            lambda: collection.replace_at_path("x", []),
            lambda: collection.move_at_path([], [0, 0]),
            lambda: collection.move_at_path([0, 0], []),
            lambda: collection.element_at_path([]),
        ]
        for operation in operations:
            with self.assertRaises(EmptyPathError):
                operation()
        self.assertEqual(log, [])
        self.assertEqual(collection.value, [IndexedNode(["a"])])

    def test_path_errors_publish_nothing(self):
        """Test that failed path operations leave no trace."""
        collection, log = self.make("a")
        with self.assertRaises(NotASectionError):
            collection.insert_at_path("x", [0, 0, 0])
        with self.assertRaises(IndexOutOfRangeError):
            collection.remove_at_path([0, 5])
        with self.assertRaises(ElementTypeMismatchError):
            collection.insert_at_path(3, [0, 0])
        with self.assertRaises(IndexOutOfRangeError):
            # "a" is taken out first, so the node is empty when [0, 3] is resolved.
            collection.move_at_path([0, 0], [0, 3])
        self.assertEqual(log, [])
        self.assertEqual(collection.value, [IndexedNode(["a"])])

    def test_snapshots_do_not_share_nested_nodes(self):
        """Test that published snapshots are not changed by later mutations."""
        collection, log = self.make("a")
        collection.insert_at_path("b", [0, 1])
        published = log[-1][1]
        collection.insert_at_path("c", [0, 2])
        self.assertEqual(published, [IndexedNode(["a", "b"])])

    def test_incoming_nodes_are_copied(self):
        """Test that one node passed twice ends up as two independent children."""
        shared = IndexedNode(["a"])
        collection = ObservableCollection()
        collection.value = [shared, shared]
        collection.insert_at_path("b", [0, 1])
        self.assertEqual(collection.value, [IndexedNode(["a", "b"]), IndexedNode(["a"])])
        self.assertEqual(shared.items, ["a"])

    def test_caller_node_stays_detached_after_insertion(self):
        """Test that mutating a node after handing it over is not seen by the collection."""
        shared = IndexedNode(["a"])
        collection = ObservableCollection([shared])
        collection.append(shared)
        collection.insert_at(shared, 0)
        collection.append_all([shared])
        collection.insert_at_path(shared, [0, 0])
        shared.insert("z", [1])
        self.assertEqual(
            collection.value[1:],
            [IndexedNode(["a"]), IndexedNode(["a"]), IndexedNode(["a"])],
        )
        self.assertEqual(collection.value[0], IndexedNode([IndexedNode(["a"]), "a"]))


class TestConfigAndSinks(unittest.TestCase):
    """Config switches, custom sinks and lifecycle."""

    def setUp(self):
        print(f"\n--- Running test: {self._testMethodName} ---")

    def test_type_checks_can_be_disabled(self):
        """Test check_element_types=False."""
        root = IndexedNode(["a"], element_type=str)
        collection = ObservableCollection(root, config=CollectionConfig(check_element_types=False))
        collection.append(1)
        self.assertEqual(collection.value, ["a", 1])

    def test_type_checks_enabled_by_default(self):
        """Test that a typed root rejects foreign elements in every flat operation."""
        collection = ObservableCollection(IndexedNode(["a"], element_type=str))
        with self.assertRaises(ElementTypeMismatchError):
            collection.append(1)
        with self.assertRaises(ElementTypeMismatchError):
            collection.append_all(["b", 2])
        with self.assertRaises(ElementTypeMismatchError):
            collection.value = ["b", 2]
        with self.assertRaises(ElementTypeMismatchError):
            collection.replace_range(range(0, 1), [2])
        self.assertEqual(collection.value, ["a"])

    def test_replay_changes_config(self):
        """Test that replay_changes reaches the collection's streams."""
        collection = ObservableCollection(["a"], config=CollectionConfig(replay_changes=True))
        collection.append("b")
        late = []
        collection.changes.subscribe(late.append)
        self.assertEqual(late, [DeepInsert((1,), "b")])

    def test_value_stream_replays_latest_snapshot(self):
        """Test that late value subscribers get the current snapshot."""
        collection = ObservableCollection(["a"])
        collection.append("b")
        late = []
        collection.value_stream.subscribe(late.append)
        self.assertEqual(late, [["a", "b"]])

    def test_snapshot_logging(self):
        """Test that log_snapshots writes snapshots to the debug log."""
        collection = ObservableCollection(["a"], config=CollectionConfig(log_snapshots=True))
        with self.assertLogs("mutable_collection", level="DEBUG") as captured:
            collection.append("b")
        self.assertTrue(any("value: ['a', 'b']" in line for line in captured.output))

    def test_custom_sink_receives_events_in_order(self):
        """Test a custom EventSink and the missing built-in streams."""
        class ListSink(EventSink):
            def __init__(self):
                self.events = []

            def emit(self, event: BaseCollectionEvent) -> None:
                self.events.append(event)

        sink = ListSink()
        collection = ObservableCollection(["a"], sink=sink, collection_id="todo")
        collection.append("b")
        self.assertEqual([type(e) for e in sink.events], [FlatChangeEvent, DeepChangeEvent, ValueEvent])
        self.assertTrue(all(e.collection_id == "todo" for e in sink.events))
        with self.assertRaises(AttributeError):
            collection.changes
        collection.close()
        self.assertEqual(sink.events[-1].type, "completed")

    def test_close_completes_streams_once(self):
        """Test that close() completes each stream once and blocks mutations."""
        collection = ObservableCollection(["a"])
        completions = []
        collection.value_stream.subscribe(lambda v: None, on_completed=lambda: completions.append("value"))
        collection.flat_changes.subscribe(lambda c: None, on_completed=lambda: completions.append("flat"))
        collection.changes.subscribe(lambda c: None, on_completed=lambda: completions.append("deep"))
        collection.close()
        collection.close()
        self.assertEqual(sorted(completions), ["deep", "flat", "value"])
        self.assertTrue(collection.closed)
        with self.assertRaises(CollectionClosedError):
            collection.append("b")

    def test_context_manager_closes(self):
        """Test that leaving the with block completes the streams."""
        with ObservableCollection(["a"]) as collection:
            collection.append("b")
        self.assertTrue(collection.streams.completed)

    def test_garbage_collection_completes_streams(self):
        """Test completion when the last reference is dropped."""
        completions = []
        collection = ObservableCollection(["a"])
        collection.changes.subscribe(lambda c: None, on_completed=lambda: completions.append("deep"))
        del collection
        gc.collect()
        self.assertEqual(completions, ["deep"])

    def test_subscriber_holding_the_collection_does_not_keep_it_alive(self):
        """Test that a view referencing its collection is collected and sees completion."""
        completions = []
        view = ListView(ObservableCollection(["a"]), completions)
        view.collection.append("b")
        self.assertEqual(view.rendered, [DeepInsert((1,), "b")])
        collection_ref = weakref.ref(view.collection)

        del view
        gc.collect()

        self.assertIsNone(collection_ref())
        self.assertEqual(completions, ["completed"])

    def test_close_then_garbage_collection_completes_once(self):
        """Test that a closed collection does not complete again when collected."""
        completions = []
        view = ListView(ObservableCollection(["a"]), completions)
        view.collection.close()
        del view
        gc.collect()
        self.assertEqual(completions, ["completed"])


class TestConcurrency(unittest.TestCase):
    """Concurrent mutations never interleave their events."""

    def setUp(self):
        print(f"\n--- Running test: {self._testMethodName} ---")

    def test_concurrent_appends_are_serialized(self):
        """Test that appends from several threads never interleave their events."""
        collection = ObservableCollection()
        log = record(collection)
        workers = 4
        per_worker = 50
        barrier = threading.Barrier(workers)

        def work(worker_id):
            barrier.wait()
            for n in range(per_worker):
                collection.append((worker_id, n))

        threads = [threading.Thread(target=work, args=(i,)) for i in range(workers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        total = workers * per_worker
        self.assertEqual(len(collection), total)
        self.assertEqual(len(log), total * 3)
        for k in range(total):
            (flat_kind, flat), (deep_kind, deep), (value_kind, value) = log[3 * k:3 * k + 3]
            self.assertEqual((flat_kind, deep_kind, value_kind), ("flat", "deep", "value"))
            self.assertEqual(flat, FlatInsert(k, flat.element))
            self.assertEqual(deep, flat.to_deep())
            self.assertEqual(len(value), k + 1)
            self.assertEqual(value[-1], flat.element)


if __name__ == '__main__':
    unittest.main()
