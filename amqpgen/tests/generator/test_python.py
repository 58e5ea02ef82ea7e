"""Tests for generated Python code."""

import ast
import dataclasses
import os
import random
from datetime import datetime, timezone
from io import BytesIO

import pytest

from amqpgen.generator import parse
from amqpgen.generator.python import InvalidName, render, runtime
from amqpgen.generator.resolver import UnknownWireType, UnresolvedDomain
from amqpgen.proto import DecodeError, FrameError, MethodFrame, Properties

FILE_DIR = os.path.dirname(os.path.realpath(__file__))

BIT_RUNS = [1, 3, 8, 9]


def gen_source(text):
    return render(parse(text), runtime_import="amqpgen.proto")


def gen_code(text):
    gbl = globals().copy()
    exec(gen_source(text), gbl)
    return gbl


def gen_file(name):
    with open(os.path.join(FILE_DIR, name), "rb") as f:
        return gen_code(f.read())


def _bit_runs_xml():
    fields = []
    for run, size in enumerate(BIT_RUNS):
        fields.extend(f'<field name="run{run}-bit{i}" type="bit"/>' for i in range(size))
        fields.append(f'<field name="sep{run}" type="octet"/>')
    return f"""
    <amqp major="0" minor="9">
      <class name="test" index="10">
        <method name="bits" index="30">{"".join(fields)}</method>
      </class>
    </amqp>
    """


def describe_probe():
    def encodes_byte_layout(expect):
        gen = gen_file("probe.xml")
        TestProbe = gen["TestProbe"]

        packed = TestProbe(flag=True, count=258, label="hi").pack()
        expect(packed) == b"\x01" + b"\x00\x00\x01\x02" + b"\x02hi"

    def decodes_byte_layout(expect):
        gen = gen_file("probe.xml")
        TestProbe = gen["TestProbe"]

        probe = TestProbe.unpack(b"\x01\x7f\xff\xff\xfe\x05hello")
        expect(probe.flag) == True
        expect(probe.count) == 0x7FFFFFFE
        expect(probe.label) == "hello"

    def clear_flag_decodes_false(expect):
        gen = gen_file("probe.xml")
        probe = gen["TestProbe"].unpack(b"\x00\x00\x00\x00\x01\x00")
        expect(probe.flag) == False
        expect(probe.count) == 1
        expect(probe.label) == ""

    def exposes_ids_and_wait(expect):
        gen = gen_file("probe.xml")
        probe = gen["TestProbe"]()
        expect(probe.id()) == (10, 20)
        expect(probe.wait()) == True
        expect(gen["FRAME_METHOD"]) == 1
        expect(gen["PROTOCOL_VERSION"]) == (0, 9, 1)
        expect(gen["DEFAULT_PORT"]) == 5672

    def truncated_input_aborts_decode(expect):
        gen = gen_file("probe.xml")
        with pytest.raises(DecodeError):
            gen["TestProbe"].unpack(b"\x01\x00\x00")
        with pytest.raises(DecodeError):
            gen["TestProbe"].unpack(b"\x01\x00\x00\x00\x01\x05hel")


def describe_dispatch():
    def routes_class_and_method(expect):
        gen = gen_file("probe.xml")
        frame = gen["parse_method_frame"](BytesIO(b"\x00\x0a\x00\x14\x01\x00\x00\x00\x07\x02ok"), 3)
        expect(frame.channel_id) == 3
        expect(frame.class_id) == 10
        expect(frame.method_id) == 20
        expect(type(frame.method)) == gen["TestProbe"]
        expect(frame.method) == gen["TestProbe"](flag=True, count=7, label="ok")

    def rejects_unknown_method(expect):
        gen = gen_file("probe.xml")
        with pytest.raises(FrameError) as exc:
            gen["parse_method_frame"](BytesIO(b"\x00\x0a\x00\x15"), 1)
        expect(str(exc.value)) == "Bad method frame, unknown method 21 for class 10"

    def rejects_unknown_class(expect):
        gen = gen_file("probe.xml")
        with pytest.raises(FrameError) as exc:
            gen["parse_method_frame"](BytesIO(b"\x00\x14\x00\x14"), 1)
        expect(str(exc.value)) == "Bad method frame, unknown class 20"

    def round_trips_through_method_frame(expect):
        gen = gen_file("amqp-subset.xml")
        QueueDeclare = gen["QueueDeclare"]
        declare = QueueDeclare(queue="jobs", durable=True, no_wait=True, arguments={"x-max-length": 10})

        buf = BytesIO()
        MethodFrame.of(5, declare).write(buf)
        buf.seek(0)
        frame = gen["parse_method_frame"](buf, 5)
        expect(frame.method) == declare
        expect(frame.method.id()) == (50, 10)

    def class_without_methods(expect):
        gen = gen_code('<amqp major="0" minor="9"><class name="empty" index="90"/></amqp>')
        with pytest.raises(FrameError) as exc:
            gen["parse_method_frame"](BytesIO(b"\x00\x5a\x00\x0a"), 1)
        expect(str(exc.value)) == "Bad method frame, unknown method 10 for class 90"

    def specification_without_classes(expect):
        gen = gen_code('<amqp major="0" minor="9"/>')
        with pytest.raises(FrameError):
            gen["parse_method_frame"](BytesIO(b"\x00\x0a\x00\x0a"), 1)


def describe_bit_packing():
    def round_trips_runs(expect):
        gen = gen_code(_bit_runs_xml())
        TestBits = gen["TestBits"]
        rng = random.Random(1234)
        names = [f.name for f in dataclasses.fields(TestBits)]

        for _ in range(100):
            values = {
                name: (rng.random() < 0.5) if "bit" in name else rng.randrange(256)
                for name in names
            }
            message = TestBits(**values)
            packed = message.pack()
            # 1 + 1 + 1 + 2 bytes of bits, 4 separator octets
            expect(len(packed)) == 9
            expect(TestBits.unpack(packed)) == message

    def nine_bit_run_spans_two_bytes(expect):
        gen = gen_code(_bit_runs_xml())
        TestBits = gen["TestBits"]
        values = {f.name: False for f in dataclasses.fields(TestBits) if "bit" in f.name}
        values["run3_bit8"] = True
        values["run3_bit0"] = True
        packed = TestBits(**values).pack()
        # run0, sep0, run1, sep1, run2, sep2, run3 (2 bytes), sep3
        expect(packed[6:8]) == b"\x01\x01"

    def bit_positions_are_lsb_first(expect):
        gen = gen_file("amqp-subset.xml")
        QueueDeclare = gen["QueueDeclare"]
        packed = QueueDeclare(queue="q", passive=True, auto_delete=True, no_wait=True).pack()
        # reserved short, shortstr "q", bits, empty table
        expect(packed) == b"\x00\x00" + b"\x01q" + bytes([0b11001]) + b"\x00\x00\x00\x00"


def describe_subset():
    def generates_valid_python(expect):
        with open(os.path.join(FILE_DIR, "amqp-subset.xml"), "rb") as f:
            source = gen_source(f.read())
        ast.parse(source)
        expect("class ConnectionStartOk(Method):" in source) == True
        expect("def parse_method_frame(r: BinaryIO, channel: int) -> MethodFrame:" in source) == True

    def reserved_fields_are_not_named(expect):
        gen = gen_file("amqp-subset.xml")
        names = [f.name for f in dataclasses.fields(gen["ConnectionOpen"])]
        expect(names) == ["virtual_host"]

    def reserved_fields_occupy_wire_space(expect):
        gen = gen_file("amqp-subset.xml")
        ConnectionOpen = gen["ConnectionOpen"]
        packed = ConnectionOpen(virtual_host="/").pack()
        expect(packed) == b"\x01/" + b"\x00" + b"\x00"
        expect(ConnectionOpen.unpack(b"\x01/\x03abc\xff").virtual_host) == "/"

    def keyword_field_names(expect):
        gen = gen_file("amqp-subset.xml")
        qos = gen["BasicQos"](prefetch_count=10, global_=True)
        expect(qos.pack()) == b"\x00\x00\x00\x00" + b"\x00\x0a" + b"\x01"

    def wait_honours_no_wait(expect):
        gen = gen_file("amqp-subset.xml")
        expect(gen["QueueDeclare"](no_wait=False).wait()) == True
        expect(gen["QueueDeclare"](no_wait=True).wait()) == False
        expect(gen["BasicPublish"]().wait()) == False
        expect(gen["ConnectionTune"]().wait()) == True

    def content_methods_carry_properties_and_body(expect):
        gen = gen_file("amqp-subset.xml")
        publish = gen["BasicPublish"](exchange="amq.direct", routing_key="jobs")
        props = Properties(content_type="text/plain", delivery_mode=2)
        publish.set_content(props, b"payload")
        expect(publish.get_content()) == (props, b"payload")
        expect(gen["BasicPublish"].CONTENT) == True
        expect(hasattr(gen["QueueDeclare"](), "body")) == False

    def round_trips_every_type(expect):
        gen = gen_file("amqp-subset.xml")
        start = gen["ConnectionStart"](
            version_major=0,
            version_minor=9,
            server_properties={"product": "test", "capabilities": {"publisher_confirms": True}},
            mechanisms=b"PLAIN AMQPLAIN",
            locales=b"en_US",
        )
        expect(gen["ConnectionStart"].unpack(start.pack())) == start

        deliver = gen["BasicDeliver"](
            consumer_tag="ctag", delivery_tag=2**40, redelivered=True, exchange="", routing_key="k"
        )
        expect(gen["BasicDeliver"].unpack(deliver.pack())) == deliver

    def method_without_fields(expect):
        gen = gen_file("amqp-subset.xml")
        expect(gen["ConnectionCloseOk"]().pack()) == b""
        expect(gen["ConnectionCloseOk"].unpack(b"")) == gen["ConnectionCloseOk"]()

    def timestamp_fields(expect):
        gen = gen_code(
            """
            <amqp major="0" minor="9">
              <class name="test" index="10">
                <method name="stamp" index="10">
                  <field name="at" type="timestamp"/>
                </method>
              </class>
            </amqp>
            """
        )
        at = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)
        packed = gen["TestStamp"](at=at).pack()
        expect(packed) == int(at.timestamp()).to_bytes(8, "big")
        expect(gen["TestStamp"].unpack(packed).at) == at


def describe_generation_errors():
    def unresolved_domain_aborts(expect):
        xml = """
        <amqp major="0" minor="9">
          <class name="queue" index="50">
            <method name="declare" index="10">
              <field name="queue" domain="queue-name"/>
            </method>
          </class>
        </amqp>
        """
        with pytest.raises(UnresolvedDomain) as exc:
            gen_source(xml)
        expect(str(exc.value)) == "queue.declare.queue: unknown domain 'queue-name'"

    def unknown_wire_type_aborts(expect):
        xml = """
        <amqp major="0" minor="9">
          <class name="test" index="10">
            <method name="probe" index="20">
              <field name="ratio" type="float"/>
            </method>
          </class>
        </amqp>
        """
        with pytest.raises(UnknownWireType) as exc:
            gen_source(xml)
        expect(str(exc.value)) == "test.probe.ratio: unknown wire type 'float'"


def describe_runtime():
    def returns_runtime_files(expect):
        files = runtime()
        expect(sorted(files)) == ["__init__.py", "serialization.py", "types.py"]
        expect("def read_shortstr" in files["serialization.py"]) == True


def _method_xml(fields, klass="test", method="probe", extra=""):
    return f"""
    <amqp major="0" minor="9">
      {extra}
      <class name="{klass}" index="10">
        <method name="{method}" index="20">{fields}</method>
      </class>
    </amqp>
    """


def describe_labels():
    def multi_line_label_stays_in_comment(expect):
        xml = _method_xml('<field name="count" type="long" label="first line&#10;count = 1/0"/>')
        source = gen_source(xml)
        expect(source).includes("count: int = 0  # first line count = 1/0\n")

        gen = gen_code(xml)
        expect(gen["TestProbe"]().count) == 0

    def blank_label_adds_no_comment(expect):
        source = gen_source(_method_xml('<field name="count" type="long" label="&#10; "/>'))
        expect(source).includes("count: int = 0\n")


def describe_name_checks():
    def rejects_attribute_shadowing_imports(expect):
        xml = _method_xml('<field name="field" type="long"/><field name="args" type="table"/>')
        with pytest.raises(InvalidName) as exc:
            gen_source(xml)
        expect(str(exc.value)) == "test.probe.field: attribute 'field' shadows a generated name"

    def rejects_attribute_shadowing_members(expect):
        for name in ("body", "pack", "wait", "write", "id"):
            with pytest.raises(InvalidName) as exc:
                gen_source(_method_xml(f'<field name="{name}" type="long"/>'))
            expect(str(exc.value)).includes(f"attribute '{name}' shadows a generated name")

    def rejects_duplicate_attributes(expect):
        xml = _method_xml('<field name="no-wait" type="octet"/><field name="no_wait" type="octet"/>')
        with pytest.raises(InvalidName) as exc:
            gen_source(xml)
        expect(str(exc.value)) == (
            "test.probe.no_wait: attribute 'no_wait' is used by more than one field"
        )

    def reserved_fields_are_not_checked(expect):
        xml = _method_xml(
            '<field name="reserved-1" type="short" reserved="1"/>'
            '<field name="reserved-1" type="short" reserved="1"/>'
        )
        expect(gen_code(xml)["TestProbe"]().pack()) == b"\x00\x00\x00\x00"

    def rejects_invalid_attribute(expect):
        with pytest.raises(InvalidName) as exc:
            gen_source(_method_xml('<field name="2nd" type="long"/>'))
        expect(str(exc.value)) == "test.probe.2nd: attribute '2nd' is not a valid identifier"

    def rejects_type_name_shadowing_runtime(expect):
        with pytest.raises(InvalidName) as exc:
            gen_source(_method_xml("", klass="method", method="frame"))
        expect(str(exc.value)) == "method.frame: type name 'MethodFrame' is already defined"

    def rejects_invalid_type_name(expect):
        with pytest.raises(InvalidName) as exc:
            gen_source(_method_xml("", klass="9", method="x"))
        expect(str(exc.value)) == "9.x: type name '9X' is not a valid identifier"

    def rejects_duplicate_type_names(expect):
        xml = """
        <amqp major="0" minor="9">
          <class name="queue" index="50">
            <method name="bind-ok" index="21"/>
          </class>
          <class name="queue-bind" index="51">
            <method name="ok" index="10"/>
          </class>
        </amqp>
        """
        with pytest.raises(InvalidName) as exc:
            gen_source(xml)
        expect(str(exc.value)) == "queue-bind.ok: type name 'QueueBindOk' is already defined"

    def rejects_constant_shadowing_runtime(expect):
        xml = _method_xml("", extra='<constant name="epoch" value="1"/>')
        with pytest.raises(InvalidName) as exc:
            gen_source(xml)
        expect(str(exc.value)) == "epoch: constant name 'EPOCH' is already defined"

    def rejects_invalid_constant(expect):
        xml = _method_xml("", extra='<constant name="1st" value="1"/>')
        with pytest.raises(InvalidName) as exc:
            gen_source(xml)
        expect(str(exc.value)) == "1st: constant name '1ST' is not a valid identifier"
