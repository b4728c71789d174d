"""
法律文书排版与分页引擎 - 后端核心模块

模块结构：
- config/     运行期配置、文书类型目录加载、日志配置
- models/     数据模型定义（格式规则/签名块/内容块/分页计划/任务）
- markup/     标记解析、格式规则解析、签名块注册表、内容组装
- layout/     内容测量（第一遍）与分页规划
- render/     PDF 渲染（第二遍）与输出目标
- pipeline/   流水线编排、进度与取消
- cli.py      命令行导出入口
"""

__version__ = "0.1.0"
