import pytest

from models.student import StudentRecord, empty_trial
from repositories.record_store import RecordStore
from repositories.student_repository import StudentRepository

ROSTER_TEXT = (
    "enname,jpname,firstname,gender,grade,class,teacher\n"
    "Taro Yamada,山田太郎,Taro,Boy,3,G3B,Ms. Sato\n"
    "Hanako Suzuki,鈴木花子,Hanako,Girl,3,G3B,Ms. Sato\n"
    "Ken Ito,伊藤健,Ken,Boy,1,G1A,Mr. Tanaka\n"
)


@pytest.fixture
def make_record():
    def factory(en_name="Taro Yamada", gender="Boy", class_section="G3B", trial1=None, trial2=None):
        t1 = empty_trial()
        t1.update(trial1 or {})
        t2 = empty_trial()
        t2.update(trial2 or {})
        return StudentRecord(
            en_name=en_name, jp_name="山田太郎", first_name=en_name.split()[0], gender=gender,
            grade=class_section[1:-1], class_section=class_section, teacher="Ms. Sato",
            trial1=t1, trial2=t2,
        )
    return factory


@pytest.fixture
def store():
    return RecordStore()


@pytest.fixture
def repository(store):
    return StudentRepository(store)


@pytest.fixture
def roster_text():
    return ROSTER_TEXT
