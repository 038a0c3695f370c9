"""Tests for binary descriptor generation."""

from google.protobuf import descriptor_pb2, descriptor_pool

from typeweaver.generator.descriptor import DescriptorBuilder, Label, render_info
from typeweaver.generator.resolver import WireType
from typeweaver.generator.schema import SchemaAssembler
from typeweaver.generator.types import EnumDefinition, Field, StructDefinition, TypeReference


def describe_builder():
    def creates_one_file_per_grouping(expect, model):
        descriptor_set = DescriptorBuilder().build(model)
        expect([f.name for f in descriptor_set.files]) == ["types.proto", "com.example.proto"]
        expect(descriptor_set.files[0].package) == None
        expect(descriptor_set.files[1].package) == "com.example"
        expect(descriptor_set.files[1].dependencies) == ["types.proto"]

    def numbers_fields_contiguously(expect, model):
        descriptor_set = DescriptorBuilder().build(model)
        person = descriptor_set.message("Person")
        expect([(f.name, f.number) for f in person.fields]) == [("id", 1), ("name", 2)]
        expect([f.wire_type for f in person.fields]) == [WireType.UINT32, WireType.STRING]

    def adds_base_as_first_field(expect, model):
        employee = DescriptorBuilder().build(model).message("Employee")
        expect(len(employee.fields)) == len(model.find("Employee").fields) + 1
        expect([f.number for f in employee.fields]) == [1, 2, 3, 4, 5]

        base = employee.fields[0]
        expect(base.name) == "base"
        expect(base.wire_type) == WireType.MESSAGE
        expect(base.type_name) == ".Person"

    def qualifies_type_names(expect, model):
        fields = DescriptorBuilder().build(model).message("Employee").fields
        by_name = {f.name: f for f in fields}
        expect(by_name["employee_id"].wire_type) == WireType.UINT32
        expect(by_name["level"].wire_type) == WireType.ENUM
        expect(by_name["level"].type_name) == ".com.example.Level"
        expect(by_name["home"].type_name) == ".Coordinate"
        expect(by_name["history"].type_name) == ".Coordinate"

    def marks_array_fields_repeated(expect, model):
        fields = DescriptorBuilder().build(model).message("Employee").fields
        expect([f.label for f in fields]) == [
            Label.SINGULAR,
            Label.SINGULAR,
            Label.SINGULAR,
            Label.SINGULAR,
            Label.REPEATED,
        ]

    def applies_zero_default_to_enums(expect, model):
        descriptor_set = DescriptorBuilder().build(model)
        level = descriptor_set.enum("Level")
        expect([(v.name, v.number) for v in level.values]) == [
            ("LEVEL_UNSPECIFIED", 0),
            ("LOW", 1),
            ("HIGH", 2),
        ]
        status = descriptor_set.enum("Status")
        expect([v.name for v in status.values]) == ["ACTIVE", "INACTIVE"]

    def wraps_arrays_and_aliases(expect, model):
        descriptor_set = DescriptorBuilder().build(model)
        scores = descriptor_set.message("Scores").fields
        expect([(f.name, f.number, f.label, f.wire_type) for f in scores]) == [
            ("values", 1, Label.REPEATED, WireType.FLOAT)
        ]
        alias = descriptor_set.message("EmployeeId").fields
        expect([(f.name, f.label, f.wire_type) for f in alias]) == [
            ("value", Label.SINGULAR, WireType.UINT64)
        ]

    def skips_malformed_entities(expect, model):
        model.entities.append(EnumDefinition("not valid"))
        model.entities.append(StructDefinition("Fine", [Field("flag", TypeReference("bool"))]))
        builder = DescriptorBuilder()
        descriptor_set = builder.build(model)
        expect(descriptor_set.enum("not valid")) == None
        expect(descriptor_set.message("Fine").fields[0].wire_type) == WireType.BOOL
        expect(len(builder.warnings)) == 1

    def skips_malformed_fields_like_the_schema(expect, processor, model):
        thing = StructDefinition(
            "Thing",
            [
                Field("ok", TypeReference("uint32")),
                Field("bad-name", TypeReference("bool")),
                Field("size", TypeReference("uint8"), array_size=-1),
                Field("tail", TypeReference("bool")),
            ],
        )
        model.entities.append(thing)
        builder = DescriptorBuilder()
        message = builder.build(model).message("Thing")
        expect([(f.name, f.number) for f in message.fields]) == [("ok", 1), ("tail", 2)]
        expect(len(builder.warnings)) == 2

        content = SchemaAssembler(processor, model).render_entity(thing)
        expect(content) == "message Thing {\n  uint32 ok = 1;\n  bool tail = 2;\n}\n"

    def types_unlinked_enum_references_as_enums(expect, model):
        model.entities.append(StructDefinition("Job", [Field("status", TypeReference("Status"))]))
        descriptor_set = DescriptorBuilder().build(model)
        status = descriptor_set.message("Job").fields[0]
        expect(status.wire_type) == WireType.ENUM
        expect(status.type_name) == ".Status"

        job = next(m for m in descriptor_set.to_proto().file[0].message_type if m.name == "Job")
        expect(job.field[0].type) == descriptor_pb2.FieldDescriptorProto.TYPE_ENUM


def describe_serialization():
    def serializes_a_file_descriptor_set(expect, model):
        data = DescriptorBuilder().build(model).serialize()
        parsed = descriptor_pb2.FileDescriptorSet.FromString(data)
        expect([f.name for f in parsed.file]) == ["types.proto", "com.example.proto"]
        expect(parsed.file[0].syntax) == "proto3"
        expect(list(parsed.file[1].dependency)) == ["types.proto"]

    def is_deterministic(expect, model):
        first = DescriptorBuilder().build(model).serialize()
        second = DescriptorBuilder().build(model).serialize()
        expect(first) == second

    def loads_into_a_descriptor_pool(expect, model):
        proto = DescriptorBuilder().build(model).to_proto()
        pool = descriptor_pool.DescriptorPool()
        for file_proto in proto.file:
            pool.AddSerializedFile(file_proto.SerializeToString())

        employee = pool.FindMessageTypeByName("com.example.Employee")
        expect([f.name for f in employee.fields]) == [
            "base",
            "employee_id",
            "level",
            "home",
            "history",
        ]
        expect(employee.fields_by_name["level"].enum_type.full_name) == "com.example.Level"
        expect(employee.fields_by_name["base"].message_type.full_name) == "Person"

        level = pool.FindEnumTypeByName("com.example.Level")
        expect(level.values_by_number[0].name) == "LEVEL_UNSPECIFIED"


def describe_info_document():
    def summarizes_the_descriptor(expect, processor, model):
        descriptor_set = DescriptorBuilder().build(model)
        data = descriptor_set.serialize()
        text = render_info(
            processor, descriptor_set, "types.desc", data, "primary", "out/types.desc"
        )

        expect(text.startswith("Binary schema descriptor: types.desc\n")) == True
        expect(f"Size: {len(data)} bytes" in text) == True
        expect("Written via: primary (out/types.desc)" in text) == True
        expect("File com.example.proto (package com.example)" in text) == True
        expect("  message Employee (5 fields)" in text) == True
        expect("  enum Level (3 values)" in text) == True
        expect("{{" in text) == False

    def omits_missing_path(expect, processor, model):
        descriptor_set = DescriptorBuilder().build(model)
        text = render_info(processor, descriptor_set, "types.desc", b"", "base64")
        expect("Written via: base64\n" in text) == True
        expect("Size: 0 bytes" in text) == True
