"""
Skill Normalizer
Maps free-text skill tokens returned by the providers onto canonical names
so "JS", "javascript" and "Java Script" count as one skill.
"""
import logging
from typing import Dict, Iterable, List, Optional

from screening.models.scoring import NONE_SENTINEL

logger = logging.getLogger(__name__)

# Canonical name -> known variants (lower-case). The canonical name matches itself.
SKILL_SYNONYMS: Dict[str, List[str]] = {
    # Languages
    'javascript': ['js', 'java script', 'ecmascript', 'es6', 'es2015'],
    'typescript': ['ts'],
    'python': ['py', 'python3', 'python 3'],
    'golang': ['go', 'go lang'],
    'c++': ['cpp', 'c plus plus'],
    'c#': ['csharp', 'c sharp'],
    'ruby': ['rb'],

    # Frontend
    'react': ['reactjs', 'react.js', 'react js'],
    'angular': ['angularjs', 'angular.js', 'angular js'],
    'vue': ['vuejs', 'vue.js', 'vue js'],
    'next.js': ['nextjs', 'next js'],
    'html': ['html5'],
    'css': ['css3'],

    # Backend
    'node.js': ['node', 'nodejs', 'node js'],
    'express': ['expressjs', 'express.js'],
    'django': ['django rest framework', 'drf'],
    'spring boot': ['springboot', 'spring-boot'],
    '.net': ['dotnet', 'dot net', 'asp.net', '.net core'],

    # Data
    'postgresql': ['postgres', 'psql', 'postgre sql'],
    'mongodb': ['mongo', 'mongo db'],
    'mysql': ['my sql'],
    'sql': ['structured query language'],
    'machine learning': ['ml'],
    'deep learning': ['dl'],
    'artificial intelligence': ['ai'],
    'natural language processing': ['nlp'],
    'scikit-learn': ['sklearn', 'scikit learn'],

    # Cloud / DevOps
    'aws': ['amazon web services'],
    'gcp': ['google cloud', 'google cloud platform'],
    'azure': ['microsoft azure'],
    'kubernetes': ['k8s', 'kube'],
    'ci/cd': ['cicd', 'ci cd', 'continuous integration'],
    'terraform': ['tf'],

    # Tooling
    'git': ['github', 'gitlab', 'version control'],
    'rest api': ['rest', 'restful', 'restful api', 'rest apis'],
    'graphql': ['graph ql'],
}


class SkillNormalizer:
    def __init__(self, synonyms: Optional[Dict[str, List[str]]] = None):
        self.synonyms = synonyms if synonyms is not None else SKILL_SYNONYMS
        self._lookup = self._build_lookup(self.synonyms)

    @staticmethod
    def _build_lookup(synonyms: Dict[str, List[str]]) -> Dict[str, str]:
        """variant -> canonical; the first canonical claiming a variant keeps it"""
        lookup: Dict[str, str] = {}
        for canonical, variants in synonyms.items():
            for variant in [canonical, *variants]:
                key = variant.strip().lower()
                if key and key not in lookup:
                    lookup[key] = canonical
        return lookup

    def canonical(self, token: str) -> Optional[str]:
        return self._lookup.get((token or "").strip().lower())

    def normalize(self, skills: Iterable[str]) -> List[str]:
        """Deduplicated canonical skills; unknown skills are kept as written"""
        seen: Dict[str, None] = {}
        for token in skills or []:
            if not isinstance(token, str):
                continue
            stripped = token.strip()
            if not stripped or stripped == NONE_SENTINEL:
                continue
            seen.setdefault(self.canonical(stripped) or stripped, None)
        return list(seen)
