"""
Device state synchronization

Keeps a local mirror of a remote device's state in step with the stream of keyword/value updates
the device sends, validates commands before they are sent, and notifies subscribers of changes.

- Keyword registry: the keywords a device family recognizes. For each keyword, the field the value
  is stored in, whether it addresses a channel, whether updates are published, and how the raw
  value is decoded. Unknown keywords are ignored, so that newer firmware can add keywords.
- State store: the scalar attributes and the per-channel attributes. Channels are created the
  first time an update or command refers to them.
- Commands: parameter-set requests are validated for all the channels they address before any
  channel is changed or anything is sent. Values that pass are written through to the local
  state and sent to the transport. Commands sent before the device is ready are dropped.
- Event dispatcher: an applied update is published under its field name while the device is ready
  and the keyword is emittable. Handlers receive (device, payload), where the payload holds the
  value and, for channel updates, the channel index.
- Device: the facade combining the above. Device families subclass it, e.g.
  sensorbox.devices.temperature_sensor.TemperatureSensor.


## Threading

The state of a device is changed by one thread only. There are no locks in the device, the store or
the dispatcher. Commands are fire and forget; nothing waits for an acknowledgement.

A transport that receives updates on its own thread posts them to a DeviceInbox (see sensorbox.inbox)
and the thread that owns the device drains the inbox. Devices share no state, so separate devices
can be owned by separate threads.

"""
