"""
动作解析器 - Action Parser

负责:
- 将单行或多行文本解析为 Action 序列
- 支持 verb(argument) 与 verb argument 两种形式
- 去除 "1. " / "2) " 等序号前缀
- 无法识别的行记录警告并跳过, 不中断后续行
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from loguru import logger

from mobot.common.exceptions import ParseError
from mobot.models.action import Action, lookup_verb


@dataclass
class ParseResult:
    """解析结果"""
    actions: List[Action] = field(default_factory=list)
    errors: List[ParseError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class ActionParser:
    """
    动作解析器

    parse() 永不抛出异常
    """

    ORDINAL_RX = re.compile(r"^\s*\d+\s*[.)]\s*")
    CALL_RX = re.compile(r"^\s*([A-Za-z_]+)\s*\(\s*([^)]*?)\s*\)\s*$")
    WORDS_RX = re.compile(r"^\s*([A-Za-z_]+)\s+(.+?)\s*$")

    def parse(self, text: str) -> List[Action]:
        """解析文本, 返回动作序列"""
        return self.parse_detailed(text).actions

    def parse_detailed(self, text: Optional[str]) -> ParseResult:
        """解析文本, 同时返回被跳过行的错误"""
        result = ParseResult()
        if not text:
            return result

        for number, raw in enumerate(text.splitlines(), start=1):
            if not raw.strip():
                continue

            line = self.ORDINAL_RX.sub("", raw, count=1)
            try:
                result.actions.append(self._parse_line(line, raw, number))
            except ParseError as e:
                logger.warning(f"无法识别的行 {number}: {raw!r} ({e.message})")
                result.errors.append(e)

        logger.debug(f"解析完成: {len(result.actions)} 个动作, 跳过 {len(result.errors)} 行")
        return result

    def parse_command(self, line: str) -> Optional[Action]:
        """解析单条操作员指令(不带序号), 无法识别时返回 None"""
        if not line or not line.strip() or "\n" in line.strip():
            return None
        try:
            return self._parse_line(line, line, 1)
        except ParseError as e:
            logger.warning(f"无法识别的指令: {line!r} ({e.message})")
            return None

    def split_command(self, line: str) -> Tuple[str, str]:
        """拆出首个单词和剩余部分, 用于给出错误提示"""
        parts = line.strip().split(None, 1)
        verb = parts[0].lower() if parts else ""
        rest = parts[1].strip() if len(parts) > 1 else ""
        return verb, rest

    def _parse_line(self, line: str, raw: str, number: int) -> Action:
        verb_text, argument = self._match_forms(line, raw, number)

        verb = lookup_verb(verb_text)
        if verb is None:
            raise ParseError(f"unknown verb '{verb_text.lower()}'", raw, number)
        if not argument:
            raise ParseError(f"'{verb_text.lower()}' needs a target", raw, number)

        return Action(verb=verb, argument=argument, raw=raw.strip(), line_number=number)

    def _match_forms(self, line: str, raw: str, number: int) -> Tuple[str, str]:
        # 形式 1) verb(argument)
        m = self.CALL_RX.match(line)
        if m:
            return m.group(1), m.group(2).strip()

        # 形式 2) verb argument
        m = self.WORDS_RX.match(line)
        if m:
            return m.group(1), m.group(2).strip()

        raise ParseError("unrecognized line", raw, number)
