from enum import IntEnum
from unittest import TestCase
from unittest.mock import Mock, call

from hamcrest import assert_that, is_, none, empty, calling, raises, has_entries, contains_exactly, equal_to

from sensorbox.commands import EnumeratedValues, ValidationError
from sensorbox.device import Device, Parameter, Transport, LoggingTransport
from sensorbox.registry import KeywordRegistry, KeywordDescriptor, EnumDecoder
from sensorbox.state import IGNORED


class Speed(IntEnum):
    SLOW = 0
    FAST = 1


speeds = EnumeratedValues(Speed, {'S': Speed.SLOW, 'F': Speed.FAST})


class Fan(Device):
    device_class = 'PhidgetFan'
    registry = KeywordRegistry([
        KeywordDescriptor('Rpm', indexed=True, emittable=True),
        KeywordDescriptor('RpmChangeTrigger', indexed=True),
        KeywordDescriptor('Speed', indexed=True, decoder=EnumDecoder(Speed)),
        KeywordDescriptor('Supply', emittable=True),
        KeywordDescriptor('FanCount', counts_channels=True),
    ])


class ParameterTest(TestCase):
    def test_key(self):
        assert_that(Parameter('PhidgetFan', 55, 'Speed', 3).key, is_('/PCK/PhidgetFan/55/Speed/3'))

    def test_key_without_serial_or_index(self):
        assert_that(Parameter('PhidgetFan', None, 'Supply').key, is_('/PCK/PhidgetFan/Supply'))

    def test_equality(self):
        assert_that(Parameter('PhidgetFan', 1, 'Speed', 0), is_(equal_to(Parameter('PhidgetFan', 1, 'Speed', 0))))


class TransportTest(TestCase):
    def test_is_abstract(self):
        assert_that(calling(Transport().send).with_args(Mock(), 1), raises(NotImplementedError))

    def test_logging_transport_records(self):
        log = Mock()
        sut = LoggingTransport(log)
        parameter = Parameter('PhidgetFan', 1, 'Speed', 0)
        sut.send(parameter, 1)
        assert_that(sut.sent, is_([(parameter, 1, True)]))
        log.debug.assert_called_once_with("send %s=%s", '/PCK/PhidgetFan/1/Speed/0', 1)


class DeviceConstructionTest(TestCase):
    def test_requires_registry(self):
        assert_that(calling(Device), raises(ValueError, 'no keyword registry'))

    def test_registry_given(self):
        registry = KeywordRegistry([])
        assert_that(Device(registry=registry).registry, is_(registry))

    def test_initial_state(self):
        sut = Fan()
        assert_that(sut.ready, is_(False))
        assert_that(sut.serial, is_(none()))
        assert_that(sut.scalars, is_(empty()))
        assert_that(sut.channels, is_(empty()))
        assert_that(sut.channel_count, is_(none()))
        assert_that(sut.transport, is_(LoggingTransport))


class DeviceTest(TestCase):
    def setUp(self):
        self.transport = Mock()
        self.sut = Fan(self.transport)
        self.handler = Mock()

    def test_attach(self):
        self.sut.on('attached', self.handler)
        self.sut.attach(1234)
        assert_that(self.sut.ready, is_(True))
        assert_that(self.sut.serial, is_(1234))
        self.handler.assert_called_once_with(self.sut, {'serial': 1234})

    def test_detach_keeps_state(self):
        self.sut.attach(1)
        self.sut.update('Rpm', 0, '1200')
        self.sut.on('detached', self.handler)
        self.sut.detach()
        assert_that(self.sut.ready, is_(False))
        assert_that(self.sut.channel(0)['rpm'], is_(1200.0))
        self.handler.assert_called_once_with(self.sut, {'serial': 1})

    def test_detach_when_not_attached(self):
        self.sut.on('detached', self.handler)
        self.sut.detach()
        self.handler.assert_not_called()

    def test_update_not_ready_is_stored_but_not_emitted(self):
        self.sut.on('rpm', self.handler)
        self.sut.update('Rpm', 1, '900')
        assert_that(self.sut.channel(1)['rpm'], is_(900.0))
        self.handler.assert_not_called()

    def test_no_retroactive_events_after_attach(self):
        self.sut.on('rpm', self.handler)
        self.sut.update('Rpm', 1, '900')
        self.sut.attach()
        self.handler.assert_not_called()
        self.sut.update('Rpm', 1, '950')
        self.handler.assert_called_once_with(self.sut, {'index': 1, 'value': 950.0})

    def test_no_events_after_detach(self):
        self.sut.on('supply', self.handler)
        self.sut.attach()
        self.sut.detach()
        self.sut.update('Supply', None, '12')
        self.handler.assert_not_called()
        assert_that(self.sut.scalar('supply'), is_(12.0))

    def test_update_scalar_emits(self):
        self.sut.attach()
        self.sut.on('supply', self.handler)
        self.sut.update('Supply', None, '12')
        self.handler.assert_called_once_with(self.sut, {'value': 12.0})

    def test_update_unknown_keyword(self):
        self.sut.attach()
        self.sut.on('humidity', self.handler)
        before = self.sut.snapshot()
        assert_that(self.sut.update('Humidity', 0, '30'), is_(IGNORED))
        assert_that(self.sut.snapshot(), is_(equal_to(before)))
        self.handler.assert_not_called()

    def test_update_silent_keyword(self):
        self.sut.attach()
        self.sut.on('rpmChangeTrigger', self.handler)
        self.sut.update('RpmChangeTrigger', 0, '10')
        assert_that(self.sut.channel(0)['rpmChangeTrigger'], is_(10.0))
        self.handler.assert_not_called()

    def test_channel_count(self):
        self.sut.update('FanCount', None, '2')
        assert_that(self.sut.channel_count, is_(2))

    def test_unsubscribe(self):
        self.sut.attach()
        subscription = self.sut.on('supply', self.handler)
        assert_that(self.sut.off(subscription), is_(self.sut))
        self.sut.update('Supply', None, '12')
        self.handler.assert_not_called()

    def test_read_only_views(self):
        self.sut.update('Supply', None, '12')
        with self.assertRaises(TypeError):
            self.sut.scalars['supply'] = 1
        with self.assertRaises(TypeError):
            self.sut.channels[0] = None

    def test_channels_are_read_only(self):
        self.sut.update('Rpm', 0, '1200')
        with self.assertRaises(TypeError):
            self.sut.channels[0]['rpm'] = 999
        with self.assertRaises(TypeError):
            self.sut.channel(0).attributes['rpm'] = 999
        assert_that(self.sut.channel(0)['rpm'], is_(1200.0))

    def test_channel_missing(self):
        assert_that(self.sut.channel(9), is_(none()))

    def test_snapshot(self):
        self.sut.attach()
        self.sut.update('Supply', None, '12')
        assert_that(self.sut.snapshot(), has_entries(ready=True, scalars={'supply': 12.0}))


class DeviceCommandTest(TestCase):
    def setUp(self):
        self.transport = Mock()
        self.sut = Fan(self.transport)
        self.sut.attach(7)

    def test_change_trigger_single(self):
        result = self.sut.set_change_trigger('RpmChangeTrigger', 1, 25)
        assert_that(result, is_(self.sut))
        assert_that(self.sut.channel(1)['rpmChangeTrigger'], is_(25.0))
        self.transport.send.assert_called_once_with(Parameter('PhidgetFan', 7, 'RpmChangeTrigger', 1), 25.0, True)

    def test_change_trigger_many(self):
        self.sut.set_change_trigger('RpmChangeTrigger', [0, 2], 0)
        assert_that(self.sut.channel(0)['rpmChangeTrigger'], is_(0.0))
        assert_that(self.sut.channel(2)['rpmChangeTrigger'], is_(0.0))
        assert_that(self.transport.send.call_args_list, contains_exactly(
            call(Parameter('PhidgetFan', 7, 'RpmChangeTrigger', 0), 0.0, True),
            call(Parameter('PhidgetFan', 7, 'RpmChangeTrigger', 2), 0.0, True)))

    def test_change_trigger_invalid(self):
        self.sut.set_change_trigger('RpmChangeTrigger', 0, 5)
        self.transport.reset_mock()
        assert_that(calling(self.sut.set_change_trigger).with_args('RpmChangeTrigger', [0, 1], -1),
                    raises(ValidationError))
        assert_that(self.sut.channel(0)['rpmChangeTrigger'], is_(5.0))
        assert_that(self.sut.channel(1), is_(none()))
        self.transport.send.assert_not_called()

    def test_invalid_index_later_in_list_configures_nothing(self):
        assert_that(calling(self.sut.set_change_trigger).with_args('RpmChangeTrigger', [0, -1], 1),
                    raises(ValidationError))
        assert_that(self.sut.channels, is_(empty()))
        self.transport.send.assert_not_called()

    def test_not_ready_is_a_no_op(self):
        self.sut.detach()
        assert_that(self.sut.set_change_trigger('RpmChangeTrigger', 0, 1), is_(self.sut))
        assert_that(self.sut.set_enumerated('Speed', 0, 'fast', speeds), is_(self.sut))
        assert_that(self.sut.channels, is_(empty()))
        self.transport.send.assert_not_called()

    def test_not_ready_does_not_validate(self):
        self.sut.detach()
        assert_that(self.sut.set_change_trigger('RpmChangeTrigger', 0, -1), is_(self.sut))

    def test_enumerated_alias(self):
        self.sut.set_enumerated('Speed', [0, 1], 'f', speeds)
        assert_that(self.sut.channel(0)['speed'], is_(1))
        assert_that(self.sut.channel(1)['speed'], is_(1))
        assert_that(self.transport.send.call_count, is_(2))

    def test_enumerated_code(self):
        self.sut.set_enumerated('Speed', 0, 0, speeds)
        self.transport.send.assert_called_once_with(Parameter('PhidgetFan', 7, 'Speed', 0), 0, True)

    def test_enumerated_invalid(self):
        self.sut.set_enumerated('Speed', 0, 'slow', speeds)
        assert_that(calling(self.sut.set_enumerated).with_args('Speed', 0, 'medium', speeds),
                    raises(ValidationError))
        assert_that(self.sut.channel(0)['speed'], is_(0))

    def test_chaining(self):
        self.sut.set_change_trigger('RpmChangeTrigger', 0, 1).set_enumerated('Speed', 0, 'S', speeds)
        assert_that(self.sut.channel(0).snapshot(), is_({'rpmChangeTrigger': 1.0, 'speed': 0}))

    def test_command_does_not_emit(self):
        handler = Mock()
        self.sut.on('speed', handler)
        self.sut.on('rpmChangeTrigger', handler)
        self.sut.set_enumerated('Speed', 0, 'S', speeds).set_change_trigger('RpmChangeTrigger', 0, 1)
        handler.assert_not_called()

    def test_unknown_parameter(self):
        assert_that(calling(self.sut.set_change_trigger).with_args('TorqueChangeTrigger', 0, 1),
                    raises(ValueError, 'no channel parameter TorqueChangeTrigger'))
        assert_that(calling(self.sut.set_enumerated).with_args('Supply', 0, 'S', speeds),
                    raises(ValueError, 'no channel parameter Supply'))
        assert_that(self.sut.channels, is_(empty()))
        self.transport.send.assert_not_called()
