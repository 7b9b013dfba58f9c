"""
CurlX SDK 示例

文件说明：
- fetch_example.py: 使用 Agent 并发请求多个 URL
"""
