"""
Tests for SchemaLibrary, the (value, error) boundary of the engine.

Tests cover:
- Generation, regeneration, lookup, removal and clearing of class schemas
- Failures leave the cache untouched
- Instantiation from JSON text (validation first, code fences, malformed JSON)
- Array wrappers and type-info schemas
- Concurrent generation and per-name lock bookkeeping
- Hostile input and reflection failures come back as errors, never as exceptions
"""

import threading
import unittest
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import patch

import json
import os
import sys
sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), '..', 'src'))
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))
from class_schema import (
    CompiledSchema,
    MalformedJsonError,
    PropertyHint,
    PropertyUsage,
    SchemaLibrary,
    SchemaNotFoundError,
    TypeTag,
    UnknownClassError,
    UnknownEnumMemberError,
    UnsupportedTypeError,
    ValidationFailedError,
    ValidationReason,
    parse_json_text,
)
from class_schema.validator import SchemaValidator
from sample_classes import CHARLIE_JSON, Fact, Person, Rig, build_registry, person_payload, rig_payload


class TestSchemaLibrary(unittest.TestCase):

    def setUp(self):
        self.library = SchemaLibrary(build_registry())

    def test_generate_and_get(self):
        schema, err = self.library.generate_named_class_schema("Person")
        self.assertIsNone(err)
        self.assertIsInstance(schema, CompiledSchema)
        self.assertIs(self.library.get_named_class_schema("Person"), schema)
        self.assertEqual(self.library.list_schemas(), ["Person"])

    def test_get_before_generate(self):
        self.assertIsNone(self.library.get_named_class_schema("Person"))

    def test_generation_is_deterministic(self):
        first, _ = self.library.generate_named_class_schema("Person")
        second, _ = self.library.generate_named_class_schema("Person")
        self.assertEqual(first.json, second.json)
        self.assertEqual(first, second)
        self.assertIs(self.library.get_named_class_schema("Person"), second)
        self.assertEqual(self.library.list_schemas(), ["Person"])

    def test_unknown_class(self):
        schema, err = self.library.generate_named_class_schema("Nobody")
        self.assertIsNone(schema)
        self.assertIsInstance(err, UnknownClassError)
        self.assertEqual(self.library.list_schemas(), [])

    def test_failed_generation_leaves_cache_untouched(self):
        with self.assertLogs("class_schema.schema_library", level="ERROR"):
            schema, err = self.library.generate_named_class_schema("MoodHolder")
        self.assertIsNone(schema)
        self.assertIsInstance(err, UnsupportedTypeError)
        self.assertEqual(err.owner_class, "MoodHolder")
        self.assertEqual(err.property_name, "mood")
        self.assertIsNone(self.library.get_named_class_schema("MoodHolder"))

    def test_unsupported_property_type(self):
        _, err = self.library.generate_named_class_schema("SetHolder")
        self.assertIsInstance(err, UnsupportedTypeError)
        self.assertEqual(err.context, ["SetHolder.values"])

    def test_remove_and_clear(self):
        self.library.generate_named_class_schema("Person")
        self.library.generate_named_class_schema("Fact")
        self.assertTrue(self.library.remove_schema("Fact"))
        self.assertFalse(self.library.remove_schema("Fact"))
        self.assertEqual(self.library.list_schemas(), ["Person"])
        self.library.clear()
        self.assertEqual(self.library.list_schemas(), [])

    def test_end_to_end_example(self):
        self.library.generate_named_class_schema("Person")
        person, err = self.library.instantiate_named_class("Person", CHARLIE_JSON)
        self.assertIsNone(err)
        self.assertIsInstance(person, Person)
        self.assertEqual(person.first_name, "Charlie")
        self.assertEqual(person.last_name, "Whimsby")
        self.assertEqual(person.password, "carrotballoonAmber")
        self.assertEqual(person.gender, Person.Gender.Female)
        self.assertEqual(len(person.facts), 1)
        self.assertEqual(person.facts[0].salient_word, "carrot")
        self.assertTrue(person.facts[0].is_password_related)

    def test_round_trip(self):
        self.library.generate_named_class_schema("Person")
        original = Person()
        original.gender = Person.Gender.Male
        original.first_name = "Ada"
        original.last_name = "Byron"
        original.password = "enginenumbers"
        original.facts = [Fact("Wrote the first program", "engine", True)]

        text = json.dumps({
            "gender": original.gender.name,
            "first_name": original.first_name,
            "last_name": original.last_name,
            "password": original.password,
            "facts": [vars(fact) for fact in original.facts],
        })
        copy, err = self.library.instantiate_named_class("Person", text)
        self.assertIsNone(err)
        self.assertEqual(vars(copy), vars(original))

    def test_instantiate_before_generate(self):
        person, err = self.library.instantiate_named_class("Person", CHARLIE_JSON)
        self.assertIsNone(person)
        self.assertIsInstance(err, SchemaNotFoundError)

    def test_malformed_json(self):
        self.library.generate_named_class_schema("Person")
        person, err = self.library.instantiate_named_class("Person", '{"gender": "Female",')
        self.assertIsNone(person)
        self.assertIsInstance(err, MalformedJsonError)

    def test_validation_runs_before_construction(self):
        self.library.generate_named_class_schema("Person")
        payload = person_payload()
        del payload["password"]
        person, err = self.library.instantiate_named_class("Person", json.dumps(payload))
        self.assertIsNone(person)
        self.assertIsInstance(err, ValidationFailedError)
        self.assertEqual(err.reason, ValidationReason.MISSING_REQUIRED)
        self.assertEqual(err.path, "/password")

    def test_extra_property_is_rejected(self):
        self.library.generate_named_class_schema("Person")
        _, err = self.library.instantiate_named_class("Person", json.dumps(person_payload(nickname="Chuck")))
        self.assertEqual(err.reason, ValidationReason.UNEXPECTED_PROPERTY)
        self.assertEqual(err.path, "/nickname")

    def test_enum_decoding(self):
        self.library.generate_named_class_schema("Person")
        person, err = self.library.instantiate_named_class("Person", json.dumps(person_payload(gender="Female")))
        self.assertIsNone(err)
        self.assertEqual(person.gender, Person.Gender.Female)

        person, err = self.library.instantiate_named_class("Person", json.dumps(person_payload(gender="Purple")))
        self.assertIsNone(person)
        self.assertIsInstance(err, UnknownEnumMemberError)
        self.assertEqual(err.given_value, "Purple")

    def test_instantiation_does_not_touch_cache(self):
        schema, _ = self.library.generate_named_class_schema("Person")
        self.library.instantiate_named_class("Person", CHARLIE_JSON)
        self.assertIs(self.library.get_named_class_schema("Person"), schema)
        self.assertEqual(self.library.list_schemas(), ["Person"])

    def test_code_fenced_response(self):
        self.library.generate_named_class_schema("Person")
        person, err = self.library.instantiate_named_class("Person", f"```json\n{CHARLIE_JSON}\n```")
        self.assertIsNone(err)
        self.assertEqual(person.first_name, "Charlie")

    def test_array_schema(self):
        self.library.generate_named_class_schema("Person")
        trio, err = self.library.get_array_schema("Person", "PersonTrio")
        self.assertIsNone(err)
        self.assertEqual(trio.document["type"], "array")
        self.assertNotIn("PersonTrio", self.library.list_schemas())

        names = ["Ann", "Bob", "Cid"]
        text = json.dumps([person_payload(first_name=name) for name in names])
        people, err = self.library.instantiate(trio, text)
        self.assertIsNone(err)
        self.assertEqual(len(people), 3)
        self.assertTrue(all(isinstance(person, Person) for person in people))
        self.assertEqual([person.first_name for person in people], names)

    def test_array_schema_from_compiled_schema(self):
        fact, _ = self.library.generate_named_class_schema("Fact")
        facts, err = self.library.get_array_schema(fact, "Facts")
        self.assertIsNone(err)
        self.assertEqual(facts.document["items"]["required"], ["text", "salient_word", "is_password_related"])

    def test_array_schema_of_unknown_class(self):
        trio, err = self.library.get_array_schema("Person", "PersonTrio")
        self.assertIsNone(trio)
        self.assertIsInstance(err, SchemaNotFoundError)

    def test_array_schema_validation(self):
        self.library.generate_named_class_schema("Person")
        trio, _ = self.library.get_array_schema("Person", "PersonTrio")
        _, err = self.library.instantiate(trio, json.dumps([person_payload(), person_payload(gender="Purple")]))
        self.assertIsInstance(err, UnknownEnumMemberError)
        self.assertEqual(err.path, "/1/gender")

    def test_type_info_schema(self):
        schema, err = self.library.generate_type_info_schema(TypeTag.FLOAT)
        self.assertIsNone(err)
        self.assertTrue(schema.value_wrapped)
        self.assertEqual(self.library.list_schemas(), [])
        value, err = self.library.instantiate(schema, '{"value": 2}')
        self.assertIsNone(err)
        self.assertEqual(value, 2.0)

    def test_type_info_schema_of_enum(self):
        schema, _ = self.library.generate_type_info_schema(
            TypeTag.INT, "Person.Gender", usage=PropertyUsage.CLASS_IS_ENUM
        )
        value, err = self.library.instantiate(schema, '{"value": "Male"}')
        self.assertIsNone(err)
        self.assertEqual(value, Person.Gender.Male)

    def test_type_info_schema_of_array(self):
        schema, _ = self.library.generate_type_info_schema(
            TypeTag.ARRAY, hint=PropertyHint.ARRAY_TYPE, hint_string="Person"
        )
        value, err = self.library.instantiate(schema, json.dumps({"value": [person_payload()]}))
        self.assertIsNone(err)
        self.assertIsInstance(value[0], Person)

    def test_type_info_schema_failure(self):
        schema, err = self.library.generate_type_info_schema(TypeTag.NIL)
        self.assertIsNone(schema)
        self.assertIsInstance(err, UnsupportedTypeError)

    def test_response_format(self):
        schema, _ = self.library.generate_named_class_schema("Person")
        envelope = self.library.open_ai_response_format(schema, "person")
        self.assertEqual(envelope["json_schema"]["schema"], schema.document)

    def test_concurrent_generation(self):
        barrier = threading.Barrier(8)

        def generate(class_name):
            barrier.wait()
            return self.library.generate_named_class_schema(class_name)

        names = ["Person", "Employee"] * 4
        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(generate, names))

        self.assertTrue(all(err is None for _, err in results))
        person_json = {schema.json for (schema, _), name in zip(results, names) if name == "Person"}
        self.assertEqual(len(person_json), 1)
        self.assertEqual(sorted(self.library.list_schemas()), ["Employee", "Person"])

    def test_locks_are_not_kept_for_unknown_names(self):
        locks = self.library._SchemaLibrary__key_locks
        self.library.instantiate_named_class("Ghost", "{}")
        self.library.generate_named_class_schema("Nobody")
        self.library.remove_schema("Phantom")
        self.assertEqual(locks, {})

        self.library.generate_named_class_schema("Person")
        self.library.generate_named_class_schema("Fact")
        self.assertEqual(sorted(locks), ["Fact", "Person"])
        self.library.remove_schema("Fact")
        self.assertEqual(sorted(locks), ["Person"])
        self.library.clear()
        self.assertEqual(locks, {})

    def test_spatial_round_trip(self):
        self.library.generate_named_class_schema("Rig")
        rig, err = self.library.instantiate_named_class("Rig", json.dumps(rig_payload()))
        self.assertIsNone(err)
        self.assertIsInstance(rig, Rig)
        self.assertEqual(rig.payload, b"\x01\x02\xff")

        _, err = self.library.instantiate_named_class("Rig", json.dumps(rig_payload(payload=[300])))
        self.assertIsInstance(err, ValidationFailedError)
        self.assertEqual(err.reason, ValidationReason.CONSTRAINT)
        self.assertEqual(err.path, "/payload/0")


class TestLibraryBoundary(unittest.TestCase):
    """Bad input and reflection failures are returned as (None, error)."""

    def setUp(self):
        self.library = SchemaLibrary(build_registry())
        self.library.generate_named_class_schema("Fact")

    def test_invalid_utf8_bytes(self):
        fact, err = self.library.instantiate_named_class("Fact", b'{"text": "\xff"}')
        self.assertIsNone(fact)
        self.assertIsInstance(err, MalformedJsonError)
        self.assertIn("UTF-8", err.message)

    def test_deeply_nested_json(self):
        schema, _ = self.library.generate_type_info_schema(TypeTag.DICTIONARY)
        text = '{"a": ' * 100000 + '{}' + '}' * 100000
        value, err = self.library.instantiate(schema, text)
        self.assertIsNone(value)
        self.assertIsInstance(err, MalformedJsonError)
        self.assertIn("too deep", err.message)

    def test_recursion_during_validation(self):
        schema = self.library.get_named_class_schema("Fact")
        with patch.object(SchemaValidator, "check", side_effect=RecursionError("maximum recursion depth exceeded")):
            fact, err = self.library.instantiate(schema, '{"text": "t", "salient_word": "w", "is_password_related": false}')
        self.assertIsNone(fact)
        self.assertIsInstance(err, ValidationFailedError)
        self.assertEqual(err.reason, ValidationReason.CONSTRAINT)

    def test_unresolvable_annotation(self):
        with self.assertLogs("class_schema.schema_library", level="ERROR"):
            schema, err = self.library.generate_named_class_schema("Unresolved")
        self.assertIsNone(schema)
        self.assertIsInstance(err, UnsupportedTypeError)
        self.assertIn("DoesNotExist", err.message)
        self.assertNotIn("Unresolved", self.library.list_schemas())

    def test_unresolvable_annotation_of_nested_class(self):
        schema, err = self.library.generate_named_class_schema("UnresolvedHolder")
        self.assertIsNone(schema)
        self.assertIsInstance(err, UnsupportedTypeError)
        self.assertEqual(err.context, ["UnresolvedHolder.inner"])


class TestParseJsonText(unittest.TestCase):

    def test_plain(self):
        self.assertEqual(parse_json_text('{"a": 1}'), {"a": 1})

    def test_bytes(self):
        self.assertEqual(parse_json_text(b'[1, 2]'), [1, 2])

    def test_invalid_utf8_bytes(self):
        with self.assertRaises(MalformedJsonError) as ctx:
            parse_json_text(b'{"text": "\xff"}')
        self.assertIsInstance(ctx.exception.__cause__, UnicodeDecodeError)

    def test_nesting_too_deep(self):
        with self.assertRaises(MalformedJsonError) as ctx:
            parse_json_text("[" * 100000 + "]" * 100000)
        self.assertIsInstance(ctx.exception.__cause__, RecursionError)

    def test_fenced(self):
        self.assertEqual(parse_json_text('```json\n{"a": 1}\n```'), {"a": 1})
        self.assertEqual(parse_json_text('  ```\n[true]\n```  '), [True])

    def test_malformed(self):
        with self.assertRaises(MalformedJsonError):
            parse_json_text("not json")
        with self.assertRaises(MalformedJsonError):
            parse_json_text(None)


if __name__ == '__main__':
    unittest.main()
