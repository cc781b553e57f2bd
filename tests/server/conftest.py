import os
import tempfile

# 服务端模块在导入时确定工作区路径，需在导入 app 之前指向临时目录
os.environ.setdefault("FOLIOSCAN_WORKSPACE_ROOT", tempfile.mkdtemp(prefix="folioscan-ws-"))
