# --- 試技（1回目/2回目）のキー ---
# データベース上の記録オブジェクトで使われるキー名
TRIAL_KEYS = ("1sttry", "2ndtry")
FIRST_TRY, SECOND_TRY = TRIAL_KEYS

# 1回の試技に含まれる測定項目。新規登録時はすべて 0 で初期化される
TRIAL_FIELDS = (
    "20mshuttleruns",
    "50msprint",
    "aveGrip",
    "gripstrL",
    "gripstrR",
    "longjump",
    "seatedtoetouch",
    "sidesteps",
    "situps",
    "softballthrowing",
)

# --- 採点種目 ---
# 握力は左右・2回の最大値を1種目として採点する
GRIP_STRENGTH = "gripStrength"

# 種目の表示順と表示名（成績票の行順もこの順序）
COMPONENT_ORDER = {
    GRIP_STRENGTH: "Grip Strength",
    "situps": "Sit-ups",
    "seatedtoetouch": "Seated Toe Touch",
    "sidesteps": "Side Steps",
    "20mshuttleruns": "20 m Shuttle Runs",
    "50msprint": "50 m Sprint",
    "longjump": "Long Jump",
    "softballthrowing": "Softball Throwing",
}

# 1回目の記録だけで採点する種目
SINGLE_TRY_COMPONENTS = ("situps", "50msprint", "20mshuttleruns")
# 1回目と2回目の良い方で採点する種目
BEST_OF_TWO_COMPONENTS = ("seatedtoetouch", "sidesteps", "longjump", "softballthrowing")

SPRINT_COMPONENT = "50msprint"

# 種目ごとの単位。ここにない種目は "times"
COMPONENT_UNITS = {
    "50msprint": "seconds",
    "longjump": "cm",
    "seatedtoetouch": "cm",
    "softballthrowing": "m",
}
DEFAULT_UNIT = "times"
GRIP_UNIT = "kg"

GENDERS = ("Boy", "Girl")

# --- 名簿CSV ---
# インポート/エクスポート共通の列名（この順序で書き出す）
ROSTER_FIELDS = ("enname", "jpname", "firstname", "gender", "grade", "class", "teacher")
CSV_ENCODING = "utf-8-sig"


# --- データベース上のパス ---
PATH_SCHOOL_YEARS = "schoolyear"
PATH_CLASS_SECTIONS = "grade"
STUDENT_KEY_PREFIX = "student"
DEFAULT_STORE_FILE = "fitness_records.json"


# --- 成績票（Excel）---
REPORT_TITLE = "Physical Fitness Test Results"
REPORT_SHEET_TEMPLATE = "Grade {grade}"
ARCHIVE_NAME_TEMPLATE = "Grade_{class_section}_Reports.zip"
WORKBOOK_NAME_TEMPLATE = "Grade_{class_section}_Reports.xlsx"
ARCHIVE_ENTRY_TEMPLATE = "{ordinal} {enname}.xlsx"
ROSTER_NAME_TEMPLATE = "students_{school_year}_{class_section}.csv"
ROSTER_NAME_ALL_CLASSES = "students_{school_year}_all_grades.csv"

HEADER_FONT_SIZE = 22
DATA_FONT_SIZE = 14
# 左揃えにする列番号（F列とI列）
LEFT_ALIGNED_COLUMNS = (6, 9)

# 列幅は自動調整せず固定値を使う
REPORT_COLUMN_WIDTHS = {
    "A": 13.5,
    "B": 7.67,
    "C": 6,
    "D": 4.22,
    "E": 6.78,
    "F": 7.5,
    "G": 4.00,
    "H": 8,
    "I": 15,
    "J": 16,
}


# --- ログ ---
LOG_FILE = "error.log"
