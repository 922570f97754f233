# Declaration and publish flags, combinable with |
NOPARAM = 0
DURABLE = 2
PASSIVE = 4
EXCLUSIVE = 8
AUTODELETE = 16
INTERNAL = 32
MANDATORY = 1024

# Exchanges every broker predeclares
AMQ_DIRECT = "amq.direct"
AMQ_TOPIC = "amq.topic"
AMQ_FANOUT = "amq.fanout"

HEARTBEAT = 600  # 10 minutes


def has_flag(flags, flag):
    return bool(flags & flag)
