"""Command strings shared by the client functions and the engine handlers."""


class CONSTS:
    class COMMS:
        PING = "ping"
        PONG = "pong"
        CLIENT_SYNC = "client_sync"
        SHUTDOWN = "shutdown"

    class TLC:
        LOAD_DEFAULT_CONFIG = "loadDefaultConfig"
        LOAD_CONFIG = "loadConfig"
        SAVE_CONFIG = "saveConfig"
        SET_SAVE_DIR = "setSaveDir"
        SET_VIDEO_PATH = "setVideoPath"
        SET_DAQ_PATH = "setDaqPath"
        SET_START_FRAME = "setStartFrame"
        SET_START_ROW = "setStartRow"
        SYNCHRONIZE = "synchronize"
        SET_THERMOCOUPLES = "setThermocouples"
        SET_REGULATOR = "setRegulator"
        SET_REGION = "setRegion"
        GET_FRAME = "getFrame"
        GET_DAQ = "getDaq"
        TRY_DROP_VIDEO = "tryDropVideo"
