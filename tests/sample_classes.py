"""Host classes shared by the test suites."""

from dataclasses import dataclass
from enum import IntEnum, IntFlag
from typing import Annotated, ClassVar

import os
import sys
sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), '..', 'src'))
from class_schema import (
    AABB,
    Color,
    HostClassRegistry,
    Plane,
    Projection,
    Quaternion,
    Rect2,
    Rid,
    Transform2D,
    Transform3D,
    Vector2,
    Vector3i,
)


@dataclass
class Fact:
    text: Annotated[str, "<b>A fact</b> about the person,\n in one sentence"] = ""
    salient_word: str = ""
    is_password_related: bool = False


class Person:
    class Gender(IntEnum):
        Male = 0
        Female = 1

    gender: Gender
    first_name: str
    last_name: str
    password: Annotated[str, "A password built from the salient words of the facts"]
    facts: list[Fact]

    def __init__(self):
        self.gender = Person.Gender.Male
        self.first_name = ""
        self.last_name = ""
        self.password = ""
        self.facts = []


class Employee(Person):
    class Permission(IntFlag):
        READ = 1
        WRITE = 2
        ADMIN = 4

    company: ClassVar[str] = "Acme"

    employee_id: int
    salary: float
    permissions: Permission
    _badge_secret: str

    def __init__(self):
        super().__init__()
        self.employee_id = 0
        self.salary = 0.0
        self.permissions = Employee.Permission(0)
        self._badge_secret = ""


class A:
    name: str
    b: "B"

    def __init__(self):
        self.name = ""
        self.b = None


class B:
    label: str
    a: "A"

    def __init__(self):
        self.label = ""
        self.a = None


class TreeNode:
    name: str
    children: "list[TreeNode]"

    def __init__(self):
        self.name = ""
        self.children = []


class Shape:
    position: Vector2
    cell: Vector3i
    bounds: Rect2
    tint: Color

    def __init__(self):
        self.position = Vector2()
        self.cell = Vector3i()
        self.bounds = Rect2()
        self.tint = Color()


class Cat:
    class Kind(IntEnum):
        Tabby = 0
        Siamese = 1

    kind: Kind

    def __init__(self):
        self.kind = Cat.Kind.Tabby


class Dog:
    class Kind(IntEnum):
        Beagle = 0
        Poodle = 1
        Husky = 2

    kind: Kind

    def __init__(self):
        self.kind = Dog.Kind.Beagle


class Pets:
    cat: Cat
    dog: Dog

    def __init__(self):
        self.cat = None
        self.dog = None


class Inventory:
    counts: list[int]
    names: list[str]
    ratios: list[float]
    checks: list[bool]
    grid: list[list[int]]
    anything: list
    points: list[Vector2]
    genders: list[Person.Gender]
    owners: list[Person]
    extra: dict

    def __init__(self):
        self.counts = []
        self.names = []
        self.ratios = []
        self.checks = []
        self.grid = []
        self.anything = []
        self.points = []
        self.genders = []
        self.owners = []
        self.extra = {}


class Rig:
    transform: Transform3D
    sprite_transform: Transform2D
    rotation: Quaternion
    bounds: AABB
    floor: Plane
    lens: Projection
    payload: bytes
    resource: Rid
    chunks: list[bytes]

    def __init__(self):
        self.transform = Transform3D()
        self.sprite_transform = Transform2D()
        self.rotation = Quaternion()
        self.bounds = AABB()
        self.floor = Plane()
        self.lens = Projection()
        self.payload = b""
        self.resource = Rid(0)
        self.chunks = []


class Mood(IntEnum):
    Happy = 0
    Sad = 1


class MoodHolder:
    mood: Mood

    def __init__(self):
        self.mood = Mood.Happy


class MoodBoard:
    title: str
    holder: MoodHolder

    def __init__(self):
        self.title = ""
        self.holder = None


class SetHolder:
    values: set

    def __init__(self):
        self.values = set()


class Unresolved:
    name: str
    other: "DoesNotExist"

    def __init__(self):
        self.name = ""
        self.other = None


class UnresolvedHolder:
    inner: Unresolved

    def __init__(self):
        self.inner = None


class Needy:
    value: int

    def __init__(self, value):
        self.value = value


class Locked:
    code: str

    def __init__(self):
        self._code = "0000"

    @property
    def code(self):
        return self._code


ALL_CLASSES = (
    Fact, Person, Employee, A, B, TreeNode, Shape, Cat, Dog, Pets, Inventory, Rig,
    MoodHolder, MoodBoard, SetHolder, Unresolved, UnresolvedHolder, Needy, Locked,
)

CHARLIE_JSON = (
    '{"gender":"Female","first_name":"Charlie","last_name":"Whimsby",'
    '"facts":[{"text":"t","salient_word":"carrot","is_password_related":true}],'
    '"password":"carrotballoonAmber"}'
)


def build_registry() -> HostClassRegistry:
    registry = HostClassRegistry()
    for cls in ALL_CLASSES:
        registry.register(cls)
    return registry


def person_payload(first_name: str = "Charlie", gender: str = "Female", **overrides) -> dict:
    payload = {
        "gender": gender,
        "first_name": first_name,
        "last_name": "Whimsby",
        "password": "carrotballoonAmber",
        "facts": [{"text": "t", "salient_word": "carrot", "is_password_related": True}],
    }
    payload.update(overrides)
    return payload


def _axes(*values, names="xyzw"):
    return dict(zip(names, values))


def rig_payload(**overrides) -> dict:
    payload = {
        "transform": {
            "basis": {"rows": [_axes(1, 0, 0), _axes(0, 1, 0), _axes(0, 0, 1)]},
            "origin": _axes(1, 2, 3),
        },
        "sprite_transform": {"x": _axes(1, 0), "y": _axes(0, 1), "origin": _axes(5, 6)},
        "rotation": _axes(0, 0, 0, 1),
        "bounds": {"position": _axes(0, 0, 0), "size": _axes(2, 2, 2)},
        "floor": {"normal": _axes(0, 1, 0), "d": -1.5},
        "lens": {"columns": [_axes(1, 0, 0, 0), _axes(0, 1, 0, 0), _axes(0, 0, 1, 0), _axes(0, 0, 0, 1)]},
        "payload": [1, 2, 255],
        "resource": 7,
        "chunks": [[0], []],
    }
    payload.update(overrides)
    return payload
